from typing import List


class ProvisioningError(Exception):
    pass


class MissingConfigurationError(ProvisioningError):
    def __init__(self, keys: List[str]):
        self.keys: List[str] = keys
        super().__init__(f"Missing configuration: {', '.join(keys)}")


class IndexNotAcknowledgedError(ProvisioningError):
    def __init__(self, index_name: str, attempts: int):
        self.index_name: str = index_name
        self.attempts: int = attempts
        super().__init__(
            f"Index {index_name} was not acknowledged after {attempts} attempts"
        )


class IngestionJobTimeoutError(ProvisioningError):
    def __init__(self, job_id: str, status: str, timeout: float):
        self.job_id: str = job_id
        self.status: str = status
        self.timeout: float = timeout
        super().__init__(
            f"Ingestion job {job_id} still {status} after {timeout:.0f} seconds"
        )
