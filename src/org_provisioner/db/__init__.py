"""DynamoDB-backed stores for pending requests and GovCloud mappings."""

from .dynamodb_store import (
    DynamoIdentityMappingStore,
    DynamoRequestStore,
    build_dynamodb_resource,
)

__all__ = [
    "DynamoIdentityMappingStore",
    "DynamoRequestStore",
    "build_dynamodb_resource",
]
