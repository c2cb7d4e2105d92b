"""Encoding and decoding of the S3 XML documents the client exchanges."""

from __future__ import annotations

import base64
import hashlib
import xml.etree.ElementTree as ET
from typing import Iterable
from urllib.parse import unquote_plus
from xml.sax.saxutils import escape

from cosclient.storage.models import (
    BucketInfo,
    BucketList,
    DeleteError,
    DeleteResult,
    ObjectInfo,
    ObjectListPage,
    Owner,
)


def _parse(body: bytes) -> ET.Element:
    try:
        return ET.fromstring(body)
    except ET.ParseError as exc:
        raise ValueError(f"Error parsing result: {exc}") from exc


def _text(element: ET.Element | None, tag: str) -> str:
    # {*} matches the tag with or without the S3 namespace.
    if element is None:
        return ""
    return (element.findtext(f"{{*}}{tag}") or "").strip()


def _key(element: ET.Element, encoded: bool = False) -> str:
    # Keys are taken verbatim; surrounding whitespace is part of the key.
    key = element.findtext("{*}Key") or ""
    return unquote_plus(key) if encoded else key


def _children(element: ET.Element | None, tag: str) -> list[ET.Element]:
    if element is None:
        return []
    return element.findall(f"{{*}}{tag}")


def _child(element: ET.Element | None, tag: str) -> ET.Element | None:
    found = _children(element, tag)
    return found[0] if found else None


def _parse_owner(element: ET.Element | None) -> Owner:
    return Owner(id=_text(element, "ID"), display_name=_text(element, "DisplayName"))


def parse_bucket_list(body: bytes) -> BucketList:
    root = _parse(body)
    buckets = tuple(
        BucketInfo(
            name=_text(bucket, "Name"),
            creation_date=_text(bucket, "CreationDate"),
            location_constraint=_text(bucket, "LocationConstraint"),
        )
        for bucket in _children(_child(root, "Buckets"), "Bucket")
    )
    return BucketList(owner=_parse_owner(_child(root, "Owner")), buckets=buckets)


def parse_object_list(body: bytes) -> ObjectListPage:
    root = _parse(body)
    encoded = _text(root, "EncodingType").lower() == "url"
    objects = []
    for entry in _children(root, "Contents"):
        size = _text(entry, "Size")
        objects.append(
            ObjectInfo(
                key=_key(entry, encoded),
                last_modified=_text(entry, "LastModified"),
                size=int(size) if size else 0,
                etag=_text(entry, "ETag").strip('"'),
            )
        )
    return ObjectListPage(
        objects=tuple(objects),
        next_continuation_token=_text(root, "NextContinuationToken"),
        is_truncated=_text(root, "IsTruncated").lower() == "true",
    )


def parse_location(body: bytes) -> str:
    root = _parse(body)
    return (root.text or "").strip()


def parse_delete_result(body: bytes) -> DeleteResult:
    if not body.strip():
        return DeleteResult()
    root = _parse(body)
    deleted = tuple(_key(entry) for entry in _children(root, "Deleted"))
    errors = tuple(
        DeleteError(key=_key(entry), code=_text(entry, "Code"), message=_text(entry, "Message"))
        for entry in _children(root, "Error")
    )
    return DeleteResult(deleted=deleted, errors=errors)


def build_delete_request(keys: Iterable[str]) -> bytes:
    objects = "".join(f"<Object><Key>{escape(key)}</Key></Object>" for key in keys)
    return f"<Delete>{objects}</Delete>".encode("utf-8")


def content_md5(body: bytes) -> str:
    return base64.b64encode(hashlib.md5(body, usedforsecurity=False).digest()).decode("ascii")
