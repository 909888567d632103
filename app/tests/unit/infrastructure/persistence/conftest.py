"""Fixtures for infrastructure.persistence tests."""

import copy

import pytest
from botocore.exceptions import ClientError

from infrastructure.persistence.dynamodb import DynamoDBDocumentStore


def _condition_failed(operation):
    return ClientError(
        {"Error": {"Code": "ConditionalCheckFailedException", "Message": "condition"}},
        operation,
    )


class FakeTable:
    """Single DynamoDB table keyed by ``id`` honouring the conditions the store uses."""

    def __init__(self, name, page_size=2):
        self.name = name
        self.items = {}
        self.page_size = page_size
        self.interfere = 0
        self.error = None

    def _check(self, condition, current):
        expression = condition.get_expression()
        operator = expression["operator"]
        attribute = expression["values"][0].name
        if operator == "attribute_not_exists":
            return current is None or attribute not in current
        if operator == "=":
            return current is not None and current.get(attribute) == expression["values"][1]
        raise AssertionError(f"unexpected condition {operator}")

    def put_item(self, Item, ConditionExpression=None):
        if self.error:
            raise self.error
        current = self.items.get(Item["id"])
        if self.interfere and current is not None:
            # another writer gets in first
            self.interfere -= 1
            current["_rev"] = current["_rev"] + 1
            current["touched"] = True
        if ConditionExpression is not None and not self._check(ConditionExpression, current):
            raise _condition_failed("PutItem")
        self.items[Item["id"]] = copy.deepcopy(Item)
        return {}

    def get_item(self, Key, ConsistentRead=False):
        item = self.items.get(Key["id"])
        return {"Item": copy.deepcopy(item)} if item is not None else {}

    def scan(self, ExclusiveStartKey=None):
        if self.error:
            raise self.error
        ids = sorted(self.items)
        start = ids.index(ExclusiveStartKey["id"]) + 1 if ExclusiveStartKey else 0
        page = ids[start : start + self.page_size]
        response = {"Items": [copy.deepcopy(self.items[i]) for i in page]}
        if start + self.page_size < len(ids):
            response["LastEvaluatedKey"] = {"id": page[-1]}
        return response

    def delete_item(self, Key, ReturnValues=None):
        old = self.items.pop(Key["id"], None)
        return {"Attributes": old} if old is not None else {}


class FakeClient:
    def __init__(self, resource):
        self.resource = resource
        self.created = []

    def list_tables(self):
        return {"TableNames": list(self.resource.tables)}

    def create_table(self, TableName, **kwargs):
        self.created.append(TableName)
        self.resource.Table(TableName)


class FakeMeta:
    def __init__(self, client):
        self.client = client


class FakeDynamoDBResource:
    """Stand-in for ``boto3.resource("dynamodb")``."""

    def __init__(self):
        self.tables = {}
        self.meta = FakeMeta(FakeClient(self))

    def Table(self, name):
        if name not in self.tables:
            self.tables[name] = FakeTable(name)
        return self.tables[name]


@pytest.fixture
def dynamodb_resource():
    return FakeDynamoDBResource()


@pytest.fixture
def dynamodb_store(dynamodb_resource):
    return DynamoDBDocumentStore(table_prefix="test-", resource=dynamodb_resource)


@pytest.fixture
def client_error_factory():
    """Factory for botocore ClientErrors."""

    def _factory(code="AccessDeniedException", operation="Scan"):
        return ClientError({"Error": {"Code": code, "Message": "test"}}, operation)

    return _factory
