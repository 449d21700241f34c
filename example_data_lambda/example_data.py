from pathlib import Path
from typing import Any, Dict, List

import boto3
from aws_lambda_powertools import Logger
from aws_lambda_powertools.utilities.typing import LambdaContext
from botocore.client import BaseClient

from kb_provisioning.config import SyncConfig
from kb_provisioning.example_data import (
    EXAMPLE_DOCUMENT_URLS,
    ExampleDataLoader,
)
from kb_provisioning.ingestion import (
    BedrockAgentJobService,
    IngestionJob,
    IngestionJobRunner,
)
from kb_provisioning.lifecycle import (
    CallbackClient,
    LifecycleEventAdapter,
    LifecycleResponse,
)

logger: Logger = Logger()

WORK_DIR: Path = Path("/tmp/kb")
PHYSICAL_RESOURCE_ID: str = "bedrock-demo-kb-example-data"
# Time kept back from the invocation ceiling to deliver the callback
CALLBACK_MARGIN_SECONDS: int = 30

s3_client: BaseClient = boto3.client("s3")
bedrock_agent_client: BaseClient = boto3.client("bedrock-agent")

adapter: LifecycleEventAdapter = LifecycleEventAdapter(
    CallbackClient(), PHYSICAL_RESOURCE_ID
)


def sync_timeout(context: LambdaContext) -> float:
    remaining_seconds: float = context.get_remaining_time_in_millis() / 1000
    return max(remaining_seconds - CALLBACK_MARGIN_SECONDS, 0)


def load_and_sync(context: LambdaContext) -> IngestionJob:
    config: SyncConfig = SyncConfig.from_env()

    keys: List[str] = ExampleDataLoader(s3_client).load(
        config.data_bucket, EXAMPLE_DOCUMENT_URLS, WORK_DIR
    )
    logger.info(f"Seeded {len(keys)} documents, starting data source sync")

    # Remaining time after seeding, not at invocation start
    timeout: float = sync_timeout(context)
    runner: IngestionJobRunner = IngestionJobRunner(
        BedrockAgentJobService(bedrock_agent_client)
    )
    return runner.run(
        config.knowledge_base_id, config.data_source_id, timeout=timeout
    )


@logger.inject_lambda_context(log_event=True)
def lambda_handler(
    event: Dict[str, Any], context: LambdaContext
) -> Dict[str, Any]:
    response: LifecycleResponse = adapter.handle_event(
        event, lambda: load_and_sync(context)
    )
    return response.model_dump(mode="json", by_alias=True)
