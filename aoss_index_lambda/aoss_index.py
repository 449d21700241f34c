import json
from typing import Any, Dict

from aws_lambda_powertools import Logger
from aws_lambda_powertools.utilities.typing import LambdaContext

from kb_provisioning.config import DEFAULT_INDEX_NAME, IndexConfig
from kb_provisioning.errors import IndexNotAcknowledgedError
from kb_provisioning.index_reconciler import (
    IndexReconciler,
    OpenSearchIndexStore,
    ReconciliationResult,
    default_index_definition,
)
from kb_provisioning.lifecycle import (
    CallbackClient,
    LifecycleEventAdapter,
    LifecycleResponse,
)

logger: Logger = Logger()

adapter: LifecycleEventAdapter = LifecycleEventAdapter(
    CallbackClient(), DEFAULT_INDEX_NAME
)


def create_index() -> ReconciliationResult:
    config: IndexConfig = IndexConfig.from_env()
    store: OpenSearchIndexStore = OpenSearchIndexStore.from_endpoint(
        config.collection_endpoint, config.region
    )

    result: ReconciliationResult = IndexReconciler(store).reconcile(
        config.index_name,
        default_index_definition(config.vector_field, config.vector_dimension),
    )
    logger.debug(
        f"Create index result: {json.dumps(result.body)}",
        extra={"attempts": len(result.attempts)},
    )

    if not result.acknowledged:
        raise IndexNotAcknowledgedError(
            config.index_name, len(result.attempts)
        )

    return result


@logger.inject_lambda_context(log_event=True)
def lambda_handler(
    event: Dict[str, Any], context: LambdaContext
) -> Dict[str, Any]:
    response: LifecycleResponse = adapter.handle_event(event, create_index)
    return response.model_dump(mode="json", by_alias=True)
