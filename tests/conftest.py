import os
import sys
from dataclasses import dataclass
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
lambda_paths = [
    PROJECT_ROOT,
    PROJECT_ROOT / "aoss_index_lambda",
    PROJECT_ROOT / "example_data_lambda",
]

for lambda_path in lambda_paths:
    if str(lambda_path) not in sys.path:
        sys.path.insert(0, str(lambda_path))

os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("POWERTOOLS_SERVICE_NAME", "kb-provisioning-test")


@dataclass
class FakeLambdaContext:
    function_name: str = "test"
    memory_limit_in_mb: int = 128
    invoked_function_arn: str = (
        "arn:aws:lambda:us-east-1:123456789012:function:test"
    )
    aws_request_id: str = "da658bd3-2d6f-4e7b-8ec2-937234644fdc"
    remaining_time_in_millis: int = 900_000

    def get_remaining_time_in_millis(self) -> int:
        return self.remaining_time_in_millis


class RecordingCallback:
    def __init__(self):
        self.deliveries = []

    def deliver(self, url, response):
        self.deliveries.append((url, response))
        return "Successfully sent to CloudFormation"


@pytest.fixture
def lambda_context() -> FakeLambdaContext:
    return FakeLambdaContext()


@pytest.fixture
def callback() -> RecordingCallback:
    return RecordingCallback()


@pytest.fixture
def lifecycle_event():
    def _event(request_type: str = "Create", **overrides) -> dict:
        event = {
            "RequestType": request_type,
            "RequestId": "unique-request-id",
            "StackId": "arn:aws:cloudformation:us-east-1:123456789012:stack/demo/guid",
            "ResponseURL": "https://cloudformation-custom-resource-response.s3.amazonaws.com/signed",
            "ResourceType": "Custom::AossIndex",
            "LogicalResourceId": "AossIndex",
            "ResourceProperties": {"ServiceToken": "arn:aws:lambda:fn"},
        }
        event.update(overrides)
        return event

    return _event
