"""Shared fixtures: fake HTTP responses, a controllable clock and a topology document."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest

from cosclient.config.client_config import ClientConfig

TOPOLOGY = {
    "identity-endpoints": {
        "iam-token": "iam.cloud.ibm.com",
        "iam-policy": "iampap.cloud.ibm.com",
    },
    "service-endpoints": {
        "cross-region": {
            "us": {
                "public": {
                    "us-geo": "s3.us.cloud-object-storage.appdomain.cloud",
                    "Dallas": "s3.dal.us.cloud-object-storage.appdomain.cloud",
                },
                "private": {"us-geo": "s3.private.us.cloud-object-storage.appdomain.cloud"},
            },
            "eu": {"public": {"eu-geo": "s3.eu.cloud-object-storage.appdomain.cloud"}},
        },
        "regional": {
            "us-south": {
                "public": {"us-south": "s3.us-south.cloud-object-storage.appdomain.cloud"},
            },
            "eu-de": {"private": {"eu-de": "s3.private.eu-de.cloud-object-storage.appdomain.cloud"}},
        },
        "single-site": {
            "ams03": {"public": {"ams03": "s3.ams03.cloud-object-storage.appdomain.cloud"}},
        },
    },
}


def make_response(status_code: int = 200, content: bytes = b"", reason: str = "OK", json_body=None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.reason = reason
    if json_body is not None:
        content = json.dumps(json_body).encode("utf-8")
    response.content = content
    response.text = content.decode("utf-8")
    response.json.side_effect = lambda: json.loads(content)
    return response


def bucket_list_xml(*buckets: tuple[str, str]) -> bytes:
    entries = "".join(
        f"<Bucket><Name>{name}</Name><CreationDate>2020-04-22T15:45:29.201Z</CreationDate>"
        f"<LocationConstraint>{location}</LocationConstraint></Bucket>"
        for name, location in buckets
    )
    return (
        '<ListAllMyBucketsResult xmlns="http://s3.amazonaws.com/doc/2006-03-01/">'
        "<Owner><ID>owner-id</ID><DisplayName>owner-name</DisplayName></Owner>"
        f"<Buckets>{entries}</Buckets></ListAllMyBucketsResult>"
    ).encode("utf-8")


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def topology_payload() -> dict:
    return json.loads(json.dumps(TOPOLOGY))


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(api_key="test-api-key", instance_id="crn:v1:test:instance")
