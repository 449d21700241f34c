from enum import Enum
from typing import Any, Callable, Dict, Optional

import requests
from aws_lambda_powertools import Logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger: Logger = Logger(child=True)

NOT_APPLICABLE: str = "N/A"
CALLBACK_TIMEOUT_SECONDS: int = 30


class RequestType(str, Enum):
    CREATE = "Create"
    UPDATE = "Update"
    DELETE = "Delete"


class ResponseStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class LifecycleRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    request_type: RequestType = Field(alias="RequestType")
    request_id: str = Field(alias="RequestId")
    stack_id: str = Field(alias="StackId")
    response_url: str = Field(alias="ResponseURL")
    resource_type: Optional[str] = Field(default=None, alias="ResourceType")
    logical_resource_id: str = Field(alias="LogicalResourceId")
    physical_resource_id: Optional[str] = Field(
        default=None, alias="PhysicalResourceId"
    )
    resource_properties: Dict[str, Any] = Field(
        default_factory=dict, alias="ResourceProperties"
    )
    old_resource_properties: Optional[Dict[str, Any]] = Field(
        default=None, alias="OldResourceProperties"
    )


class LifecycleResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: ResponseStatus = Field(
        default=ResponseStatus.SUCCESS, alias="Status"
    )
    reason: str = Field(default=NOT_APPLICABLE, alias="Reason")
    physical_resource_id: str = Field(alias="PhysicalResourceId")
    stack_id: str = Field(alias="StackId")
    request_id: str = Field(alias="RequestId")
    logical_resource_id: str = Field(alias="LogicalResourceId")
    data: Dict[str, Any] = Field(default_factory=dict, alias="Data")

    @classmethod
    def for_request(
        cls, request: LifecycleRequest, default_physical_resource_id: str
    ) -> "LifecycleResponse":
        return cls(
            physical_resource_id=request.physical_resource_id
            or default_physical_resource_id,
            stack_id=request.stack_id,
            request_id=request.request_id,
            logical_resource_id=request.logical_resource_id,
        )

    def mark_failed(self, error: Exception) -> None:
        self.status = ResponseStatus.FAILED
        self.reason = f"Failed: {error}"


class CallbackClient:
    def __init__(
        self,
        session: Any = requests,
        timeout: int = CALLBACK_TIMEOUT_SECONDS,
    ):
        self.session: Any = session
        self.timeout: int = timeout

    def deliver(self, url: str, response: LifecycleResponse) -> str:
        """PUT the response to the pre-signed URL.

        The URL is signed without a content type, so the header is sent
        empty. Failures are reported in the returned message, never raised.
        """
        try:
            http_response = self.session.put(
                url,
                data=response.model_dump_json(by_alias=True),
                headers={"Content-Type": ""},
                timeout=self.timeout,
            )
            http_response.raise_for_status()
            return "Successfully sent to CloudFormation"
        except requests.RequestException as e:
            return f"Failed to send to CloudFormation: {e}"


class LifecycleEventAdapter:
    def __init__(
        self,
        callback: CallbackClient,
        default_physical_resource_id: str,
    ):
        self.callback: CallbackClient = callback
        self.default_physical_resource_id: str = default_physical_resource_id

    def handle_event(
        self, event: Dict[str, Any], procedure: Callable[[], Any]
    ) -> LifecycleResponse:
        try:
            request: LifecycleRequest = LifecycleRequest.model_validate(event)
        except ValidationError as e:
            logger.exception("Malformed lifecycle event")
            response_url: Optional[str] = event.get("ResponseURL")
            if not response_url:
                raise

            response: LifecycleResponse = LifecycleResponse(
                physical_resource_id=str(
                    event.get("PhysicalResourceId")
                    or self.default_physical_resource_id
                ),
                stack_id=str(event.get("StackId") or ""),
                request_id=str(event.get("RequestId") or ""),
                logical_resource_id=str(event.get("LogicalResourceId") or ""),
            )
            response.mark_failed(e)
            self.deliver(str(response_url), response)
            return response

        return self.handle(request, procedure)

    def handle(
        self, request: LifecycleRequest, procedure: Callable[[], Any]
    ) -> LifecycleResponse:
        """Run ``procedure`` for Create/Update and report the outcome.

        Exactly one response is delivered to the request's ``ResponseURL``
        whatever the procedure does; its errors become a FAILED response.
        """
        response: LifecycleResponse = LifecycleResponse.for_request(
            request, self.default_physical_resource_id
        )

        try:
            # Delete retains the resource
            if request.request_type in (
                RequestType.CREATE,
                RequestType.UPDATE,
            ):
                result: Any = procedure()
                logger.debug("Procedure finished", extra={"result": result})
        except Exception as e:
            logger.exception(
                f"{request.request_type.value} failed for "
                f"{request.logical_resource_id}"
            )
            response.mark_failed(e)

        self.deliver(request.response_url, response)
        return response

    def deliver(self, url: str, response: LifecycleResponse) -> None:
        logger.debug(
            "Sending lifecycle response",
            extra={
                "response": response.model_dump(mode="json", by_alias=True)
            },
        )
        delivery: str = self.callback.deliver(url, response)
        logger.info(delivery, extra={"status": response.status.value})
