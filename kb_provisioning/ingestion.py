import time
import uuid
from typing import Any, Callable, FrozenSet, Optional, Protocol

from aws_lambda_powertools import Logger
from botocore.client import BaseClient
from pydantic import BaseModel

from kb_provisioning.errors import IngestionJobTimeoutError

logger: Logger = Logger(child=True)

POLL_INTERVAL_SECONDS: int = 10
RUNNING_STATUSES: FrozenSet[str] = frozenset({"STARTING", "IN_PROGRESS"})


class JobService(Protocol):
    def start(
        self, knowledge_base_id: str, data_source_id: str, client_token: str
    ) -> str:
        ...

    def get_status(
        self, job_id: str, knowledge_base_id: str, data_source_id: str
    ) -> str:
        ...


class BedrockAgentJobService:
    def __init__(self, client: BaseClient):
        self.client: BaseClient = client

    def start(
        self, knowledge_base_id: str, data_source_id: str, client_token: str
    ) -> str:
        response: Any = self.client.start_ingestion_job(
            knowledgeBaseId=knowledge_base_id,
            dataSourceId=data_source_id,
            clientToken=client_token,
        )
        return response["ingestionJob"]["ingestionJobId"]

    def get_status(
        self, job_id: str, knowledge_base_id: str, data_source_id: str
    ) -> str:
        response: Any = self.client.get_ingestion_job(
            ingestionJobId=job_id,
            knowledgeBaseId=knowledge_base_id,
            dataSourceId=data_source_id,
        )
        return response["ingestionJob"]["status"]


class IngestionJob(BaseModel):
    job_id: str
    status: str
    polls: int


class IngestionJobRunner:
    def __init__(
        self,
        job_service: JobService,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        token_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self.job_service: JobService = job_service
        self.poll_interval: float = poll_interval
        self.sleep: Callable[[float], None] = sleep
        self.clock: Callable[[], float] = clock
        self.token_factory: Callable[[], str] = token_factory

    def run(
        self,
        knowledge_base_id: str,
        data_source_id: str,
        timeout: Optional[float] = None,
    ) -> IngestionJob:
        """Start one ingestion job and wait until it is no longer running.

        A finished job is returned whether it completed or failed. With
        ``timeout`` set, IngestionJobTimeoutError is raised once the job
        is still running past the deadline; ``None`` waits without limit.
        """
        client_token: str = self.token_factory()
        job_id: str = self.job_service.start(
            knowledge_base_id, data_source_id, client_token
        )
        logger.info(
            f"Started ingestion job {job_id}",
            extra={
                "knowledge_base_id": knowledge_base_id,
                "data_source_id": data_source_id,
                "client_token": client_token,
            },
        )

        deadline: Optional[float] = (
            None if timeout is None else self.clock() + timeout
        )
        polls: int = 0

        while True:
            status: str = self.job_service.get_status(
                job_id, knowledge_base_id, data_source_id
            )
            polls += 1

            if status not in RUNNING_STATUSES:
                break

            if deadline is not None and self.clock() >= deadline:
                raise IngestionJobTimeoutError(job_id, status, timeout)

            logger.debug(f"Ingestion job {job_id} is {status}")
            self.sleep(self.poll_interval)

        logger.info(
            f"Ingestion job {job_id} finished with status {status}",
            extra={"polls": polls},
        )
        return IngestionJob(job_id=job_id, status=status, polls=polls)
