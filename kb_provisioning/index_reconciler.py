import time
from typing import Any, Callable, Dict, List, Optional, Protocol
from urllib.parse import urlparse

import boto3
from aws_lambda_powertools import Logger
from opensearchpy import AWSV4SignerAuth, OpenSearch, RequestsHttpConnection
from opensearchpy.exceptions import TransportError
from pydantic import BaseModel, Field

logger: Logger = Logger(child=True)

MAX_ATTEMPTS: int = 3
RETRY_DELAY_SECONDS: int = 10
# Bedrock rejects a knowledge base pointing at an index that is not yet
# visible to every collection node.
STABILIZATION_DELAY_SECONDS: int = 60


class IndexStore(Protocol):
    def create(self, name: str, definition: Dict[str, Any]) -> Dict[str, Any]:
        ...


class OpenSearchIndexStore:
    def __init__(self, client: OpenSearch):
        self.client: OpenSearch = client

    @classmethod
    def from_endpoint(
        cls, endpoint: str, region: Optional[str]
    ) -> "OpenSearchIndexStore":
        parsed = urlparse(endpoint)
        host: str = parsed.hostname or endpoint
        credentials = boto3.session.Session().get_credentials()
        client: OpenSearch = OpenSearch(
            hosts=[{"host": host, "port": parsed.port or 443}],
            http_auth=AWSV4SignerAuth(credentials, region, "aoss"),
            use_ssl=True,
            verify_certs=True,
            connection_class=RequestsHttpConnection,
            timeout=60,
        )
        logger.info(f"OpenSearchIndexStore initialized for host: {host}")
        return cls(client)

    def create(self, name: str, definition: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.indices.create(index=name, body=definition)


def default_index_definition(
    vector_field: str, dimension: int
) -> Dict[str, Any]:
    return {
        "settings": {"knn": "true"},
        "mappings": {
            "properties": {
                "AMAZON_BEDROCK_METADATA": {"type": "text", "index": False},
                "AMAZON_BEDROCK_TEXT_CHUNK": {"type": "text"},
                vector_field: {
                    "type": "knn_vector",
                    "dimension": dimension,
                    "method": {
                        "engine": "faiss",
                        "space_type": "l2",
                        "name": "hnsw",
                        "parameters": {},
                    },
                },
            }
        },
    }


class ReconciliationAttempt(BaseModel):
    attempt_number: int
    response_body: Optional[Dict[str, Any]] = None
    acknowledged: bool = Field(default=False)


class ReconciliationResult(BaseModel):
    index_name: str
    attempts: List[ReconciliationAttempt]

    @property
    def acknowledged(self) -> bool:
        return bool(self.attempts) and self.attempts[-1].acknowledged

    @property
    def body(self) -> Optional[Dict[str, Any]]:
        for attempt in reversed(self.attempts):
            if attempt.response_body is not None:
                return attempt.response_body
        return None


class IndexReconciler:
    def __init__(
        self,
        store: IndexStore,
        max_attempts: int = MAX_ATTEMPTS,
        retry_delay: float = RETRY_DELAY_SECONDS,
        stabilization_delay: float = STABILIZATION_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store: IndexStore = store
        self.max_attempts: int = max_attempts
        self.retry_delay: float = retry_delay
        self.stabilization_delay: float = stabilization_delay
        self.sleep: Callable[[float], None] = sleep

    def reconcile(
        self, name: str, definition: Dict[str, Any]
    ) -> ReconciliationResult:
        """Create ``name`` with up to ``max_attempts`` tries.

        Errors and unacknowledged responses are retried alike. Exhaustion is
        not an error: callers inspect ``ReconciliationResult.acknowledged``.
        """
        attempts: List[ReconciliationAttempt] = []

        for attempt_number in range(1, self.max_attempts + 1):
            attempt: ReconciliationAttempt = ReconciliationAttempt(
                attempt_number=attempt_number
            )
            attempts.append(attempt)

            try:
                body: Dict[str, Any] = self.store.create(name, definition)
            except Exception as e:
                if isinstance(e, TransportError) and isinstance(e.info, dict):
                    attempt.response_body = e.info
                logger.warning(
                    f"Attempt {attempt_number} to create index {name} "
                    f"failed: {e}"
                )
                self.sleep(self.retry_delay)
                continue

            attempt.response_body = body
            attempt.acknowledged = body.get("acknowledged") is True

            if attempt.acknowledged:
                logger.info(
                    f"Index {name} acknowledged on attempt {attempt_number}"
                )
                self.sleep(self.stabilization_delay)
                break

            logger.warning(
                f"Index {name} not acknowledged on attempt {attempt_number}",
                extra={"response_body": body},
            )
            self.sleep(self.retry_delay)

        return ReconciliationResult(index_name=name, attempts=attempts)
