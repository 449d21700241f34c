from typing import List
from unittest.mock import MagicMock

import pytest

from kb_provisioning.errors import IngestionJobTimeoutError
from kb_provisioning.ingestion import (
    BedrockAgentJobService,
    IngestionJobRunner,
)


class ScriptedJobService:
    def __init__(self, statuses: List[str], job_id: str = "job-1"):
        self.statuses: List[str] = statuses
        self.job_id: str = job_id
        self.tokens: List[str] = []
        self.polls: List[tuple] = []

    def start(self, knowledge_base_id, data_source_id, client_token):
        self.tokens.append(client_token)
        return self.job_id

    def get_status(self, job_id, knowledge_base_id, data_source_id):
        self.polls.append((job_id, knowledge_base_id, data_source_id))
        return self.statuses[len(self.polls) - 1]


class FakeClock:
    def __init__(self):
        self.now: float = 0.0

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.now += seconds


def test_polls_until_job_leaves_running_states():
    service = ScriptedJobService(["IN_PROGRESS", "IN_PROGRESS", "COMPLETE"])
    sleeps: List[float] = []

    job = IngestionJobRunner(service, sleep=sleeps.append).run("kb", "ds")

    assert len(service.polls) == 3
    assert service.polls[0] == ("job-1", "kb", "ds")
    assert sleeps == [10, 10]
    assert job.status == "COMPLETE"
    assert job.polls == 3


def test_starting_is_treated_as_running():
    service = ScriptedJobService(["STARTING", "IN_PROGRESS", "COMPLETE"])

    job = IngestionJobRunner(service, sleep=lambda _: None).run("kb", "ds")

    assert job.polls == 3


def test_failed_job_finishes_without_raising():
    service = ScriptedJobService(["IN_PROGRESS", "FAILED"])

    job = IngestionJobRunner(service, sleep=lambda _: None).run("kb", "ds")

    assert job.status == "FAILED"


def test_each_run_uses_a_fresh_client_token():
    service = ScriptedJobService(["COMPLETE", "COMPLETE"])
    runner = IngestionJobRunner(service, sleep=lambda _: None)

    runner.run("kb", "ds")
    runner.run("kb", "ds")

    assert len(service.tokens) == 2
    assert service.tokens[0] != service.tokens[1]


def test_submission_failure_propagates():
    service = MagicMock()
    service.start.side_effect = RuntimeError("ThrottlingException")

    with pytest.raises(RuntimeError, match="ThrottlingException"):
        IngestionJobRunner(service, sleep=lambda _: None).run("kb", "ds")

    service.get_status.assert_not_called()


def test_timeout_raises_when_job_outlives_deadline():
    service = ScriptedJobService(["IN_PROGRESS"] * 10)
    clock = FakeClock()
    runner = IngestionJobRunner(service, sleep=clock.sleep, clock=clock)

    with pytest.raises(IngestionJobTimeoutError, match="job-1") as excinfo:
        runner.run("kb", "ds", timeout=25)

    assert len(service.polls) == 4
    assert excinfo.value.job_id == "job-1"
    assert excinfo.value.status == "IN_PROGRESS"
    assert excinfo.value.timeout == 25


def test_bedrock_agent_service_maps_requests_and_responses():
    client = MagicMock()
    client.start_ingestion_job.return_value = {
        "ingestionJob": {"ingestionJobId": "job-42", "status": "STARTING"}
    }
    client.get_ingestion_job.return_value = {
        "ingestionJob": {"ingestionJobId": "job-42", "status": "COMPLETE"}
    }
    service = BedrockAgentJobService(client)

    assert service.start("kb", "ds", "token") == "job-42"
    assert service.get_status("job-42", "kb", "ds") == "COMPLETE"
    client.start_ingestion_job.assert_called_once_with(
        knowledgeBaseId="kb", dataSourceId="ds", clientToken="token"
    )
    client.get_ingestion_job.assert_called_once_with(
        ingestionJobId="job-42", knowledgeBaseId="kb", dataSourceId="ds"
    )
