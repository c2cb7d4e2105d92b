"""Object storage client: bucket and object operations over the REST API.

Each call makes sure the bearer token is valid, resolves the regional
endpoint for the bucket and then issues the request.
"""

from __future__ import annotations

import json
from typing import Sequence
from urllib.parse import quote, urlsplit, urlunsplit

import requests
from pydantic import ValidationError

from cosclient.auth.token_manager import TokenManager
from cosclient.config.client_config import ClientConfig
from cosclient.endpoints.resolver import EndpointResolver
from cosclient.endpoints.topology import TopologyCache
from cosclient.errors import COSError, TransportError
from cosclient.http.session import create_https_session
from cosclient.http.transport import HttpTransport
from cosclient.logging_config import get_logger
from cosclient.storage import s3_xml
from cosclient.storage.bulk_delete import BulkDeleteCoordinator, BulkDeleteReport
from cosclient.storage.models import BucketList, BucketMetadata, DeleteResult, ObjectInfo

logger = get_logger(__name__)


def _key_path(key: str) -> str:
    return quote(key, safe="/~")


class COSClient:
    def __init__(
        self,
        config: ClientConfig,
        topology_cache: TopologyCache | None = None,
        session: requests.Session | None = None,
        token_manager: TokenManager | None = None,
    ) -> None:
        self.config = config
        self._session = session or create_https_session(pool_size=config.delete_workers)
        self.token_manager = token_manager or TokenManager(
            api_key=config.api_key,
            iam_endpoint=config.iam_endpoint,
            session=self._session,
            refresh_lookahead=config.refresh_lookahead_seconds,
            timeout=config.timeout_seconds,
            verify=config.verify_tls,
        )
        self.topology_cache = topology_cache or TopologyCache(
            config.endpoints_url,
            session=self._session,
            timeout=config.timeout_seconds,
            verify=config.verify_tls,
        )
        self.transport = HttpTransport(
            self.token_manager,
            instance_id=config.instance_id,
            session=self._session,
            timeout=config.timeout_seconds,
            verify=config.verify_tls,
        )
        self.resolver = EndpointResolver(self.topology_cache, list_buckets=self.list_buckets)
        self.bulk_deleter = BulkDeleteCoordinator(
            list_objects=self.list_objects,
            delete_objects=self.delete_objects,
            batch_size=config.delete_batch_size,
            max_workers=config.delete_workers,
        )

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "COSClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def get_endpoint_for_bucket(self, bucket: str) -> str:
        return self.resolver.resolve(bucket)

    def invalidate_endpoints(self, bucket: str | None = None) -> None:
        self.resolver.invalidate(bucket)

    # Buckets

    def create_bucket(self, name: str, deployment_type: str, region: str) -> None:
        base_url = self.resolver.endpoint_for(deployment_type, region)
        url = f"{base_url}/{name}"
        self.transport.request("PUT", url, instance_scoped=True)
        self.resolver.remember(name, base_url)
        logger.info("Created bucket: bucket=%s type=%s region=%s", name, deployment_type, region)

    def list_buckets(self) -> BucketList:
        url = f"{self.config.default_service_url}?extended"
        body = self.transport.request("GET", url, instance_scoped=True)
        try:
            return s3_xml.parse_bucket_list(body)
        except ValueError as exc:
            raise COSError(f"ListBuckets/GET({url}): {exc}") from exc

    def delete_bucket(self, name: str) -> None:
        url = f"{self.resolver.resolve(name)}/{name}"
        self.transport.request("DELETE", url)
        self.resolver.invalidate(name)
        logger.info("Deleted bucket: bucket=%s", name)

    def delete_bucket_contents(self, name: str) -> BulkDeleteReport:
        return self.bulk_deleter.delete_all_contents(name)

    def delete_bucket_all(self, name: str) -> BulkDeleteReport:
        report = self.delete_bucket_contents(name)
        self.delete_bucket(name)
        return report

    def bucket_exists(self, name: str) -> bool:
        url = f"{self.config.default_service_url}/{name}"
        try:
            self.transport.request("HEAD", url)
            return True
        except TransportError as exc:
            if exc.status == 404:
                return False
            raise

    def get_bucket_location(self, name: str) -> str:
        url = f"{self.resolver.resolve(name)}/{name}?location"
        body = self.transport.request("GET", url)
        try:
            return s3_xml.parse_location(body)
        except ValueError as exc:
            raise COSError(f"GetBucketLocation/GET({url}): {exc}") from exc

    def get_bucket_metadata(self, name: str) -> BucketMetadata:
        service_url = self.resolver.resolve(name)
        test = "test." if ".test." in service_url else ""
        url = f"{self.config.config_api_url.format(test=test)}/{name}"
        body = self.transport.request("GET", url)
        try:
            return BucketMetadata.model_validate(json.loads(body))
        except (ValueError, ValidationError) as exc:
            raise COSError(f"GetBucketMetadata/GET({url}): {exc}") from exc

    # Objects

    def list_objects(self, bucket: str) -> list[ObjectInfo]:
        url = f"{self.resolver.resolve(bucket)}/{bucket}"
        objects: list[ObjectInfo] = []
        continuation_token = ""
        pages = 0
        while True:
            params = {"list-type": "2", "encoding-type": "url"}
            if continuation_token:
                params["continuation-token"] = continuation_token
            body = self.transport.request("GET", url, params=params, instance_scoped=True)
            try:
                page = s3_xml.parse_object_list(body)
            except ValueError as exc:
                raise COSError(f"ListObjects/GET({url}): {exc}") from exc
            objects.extend(page.objects)
            pages += 1
            continuation_token = page.next_continuation_token
            if not continuation_token:
                break
        logger.debug("Listed objects: bucket=%s objects=%s pages=%s", bucket, len(objects), pages)
        return objects

    def upload_object(self, bucket: str, key: str, data: bytes, content_type: str | None = None) -> None:
        url = f"{self.resolver.resolve(bucket)}/{bucket}/{_key_path(key)}"
        headers = {"Content-Type": content_type} if content_type else None
        self.transport.request("PUT", url, body=data, headers=headers)

    def download_object(self, bucket: str, key: str) -> bytes:
        url = f"{self.resolver.resolve(bucket)}/{bucket}/{_key_path(key)}"
        return self.transport.request("GET", url)

    def delete_object(self, bucket: str, key: str) -> None:
        url = f"{self.resolver.resolve(bucket)}/{bucket}/{_key_path(key)}"
        self.transport.request("DELETE", url)

    def delete_objects(self, bucket: str, keys: Sequence[str]) -> DeleteResult:
        url = f"{self.resolver.resolve(bucket)}/{bucket}?delete"
        body = s3_xml.build_delete_request(keys)
        headers = {
            "Content-MD5": s3_xml.content_md5(body),
            "Content-Type": "application/xml",
        }
        response = self.transport.request("POST", url, body=body, headers=headers)
        try:
            return s3_xml.parse_delete_result(response)
        except ValueError as exc:
            raise COSError(f"DeleteObjects/POST({url}): {exc}") from exc

    def copy_object(self, src_bucket: str, src_key: str, dst_bucket: str, dst_key: str) -> None:
        # Copies are addressed virtual-host style: https://<bucket>.<host>/<key>
        parts = urlsplit(self.resolver.resolve(dst_bucket))
        base_url = urlunsplit((parts.scheme, f"{dst_bucket}.{parts.netloc}", parts.path, "", ""))
        url = f"{base_url}/{_key_path(dst_key)}"
        headers = {
            "X-Amz-Copy-Source": f"/{src_bucket}/{_key_path(src_key)}",
        }
        self.transport.request("PUT", url, headers=headers, instance_scoped=True)
        logger.info("Copied object: source=%s/%s target=%s/%s", src_bucket, src_key, dst_bucket, dst_key)

