import os
from typing import Dict, List, Optional

import boto3
from pydantic import BaseModel, Field

from kb_provisioning.errors import MissingConfigurationError

DEFAULT_INDEX_NAME: str = "bedrock-demo-kb-default-index"
DEFAULT_VECTOR_FIELD: str = "bedrock-demo-kb-default-vector"
DEFAULT_VECTOR_DIMENSION: int = 1536


def _require(keys: List[str]) -> Dict[str, str]:
    values: Dict[str, str] = {key: os.environ.get(key, "") for key in keys}
    missing: List[str] = [key for key, value in values.items() if not value]
    if missing:
        raise MissingConfigurationError(missing)
    return values


class IndexConfig(BaseModel):
    collection_endpoint: str
    region: Optional[str] = None
    index_name: str = Field(default=DEFAULT_INDEX_NAME)
    vector_field: str = Field(default=DEFAULT_VECTOR_FIELD)
    vector_dimension: int = Field(default=DEFAULT_VECTOR_DIMENSION, gt=0)

    @classmethod
    def from_env(cls) -> "IndexConfig":
        required: Dict[str, str] = _require(["AOSS_COLLECTION_ENDPOINT"])
        return cls(
            collection_endpoint=required["AOSS_COLLECTION_ENDPOINT"],
            region=os.environ.get("AWS_REGION")
            or boto3.session.Session().region_name,
            index_name=os.environ.get("AOSS_INDEX_NAME", DEFAULT_INDEX_NAME),
            vector_field=os.environ.get(
                "AOSS_VECTOR_FIELD", DEFAULT_VECTOR_FIELD
            ),
            vector_dimension=int(
                os.environ.get(
                    "AOSS_VECTOR_DIMENSION", str(DEFAULT_VECTOR_DIMENSION)
                )
            ),
        )


class SyncConfig(BaseModel):
    knowledge_base_id: str
    data_source_id: str
    data_bucket: str

    @classmethod
    def from_env(cls) -> "SyncConfig":
        required: Dict[str, str] = _require(
            ["KNOWLEDGEBASE_ID", "DATASOURCE_ID", "DATA_BUCKET"]
        )
        return cls(
            knowledge_base_id=required["KNOWLEDGEBASE_ID"],
            data_source_id=required["DATASOURCE_ID"],
            data_bucket=required["DATA_BUCKET"],
        )
