"""Map a bucket name to the regional base URL that serves it.

A bucket's location constraint encodes its deployment type and region:

    us-smart            cross-region, region "us"
    ams03-standard      single-site when "ams03" is a known single-site region
    us-south-standard   regional, region "us-south"
"""

from __future__ import annotations

from typing import Callable, NamedTuple

from cosclient.endpoints.topology import (
    CROSS_REGION,
    PUBLIC_SCOPE,
    REGIONAL,
    SINGLE_SITE,
    EndpointTopology,
    TopologyCache,
)
from cosclient.errors import BucketNotFound, COSError, EndpointNotFound, LocationParseFailed, add_context
from cosclient.logging_config import get_logger
from cosclient.storage.models import BucketList

logger = get_logger(__name__)


class Placement(NamedTuple):
    deployment_type: str
    region: str


def parse_location_constraint(location: str, topology: EndpointTopology) -> Placement:
    parts = location.split("-")
    if len(parts) == 2:
        region = parts[0]
        if topology.is_single_site(region):
            return Placement(SINGLE_SITE, region)
        return Placement(CROSS_REGION, region)
    if len(parts) == 3:
        return Placement(REGIONAL, f"{parts[0]}-{parts[1]}")
    raise LocationParseFailed(location)


class EndpointResolver:
    """Resolves and caches base URLs per bucket.

    The bucket cache is filled lazily and is only emptied by
    :meth:`invalidate`. Concurrent first resolutions of one bucket may each
    list buckets; they all arrive at the same URL.
    """

    def __init__(self, topology_cache: TopologyCache, list_buckets: Callable[[], BucketList]) -> None:
        self._topology_cache = topology_cache
        self._list_buckets = list_buckets
        self._bucket_urls: dict[str, str] = {}

    def cached(self, bucket_name: str) -> str | None:
        return self._bucket_urls.get(bucket_name)

    def remember(self, bucket_name: str, base_url: str) -> None:
        self._bucket_urls[bucket_name] = base_url

    def invalidate(self, bucket_name: str | None = None) -> None:
        if bucket_name is None:
            self._bucket_urls.clear()
        else:
            self._bucket_urls.pop(bucket_name, None)

    def resolve(self, bucket_name: str) -> str:
        cached = self._bucket_urls.get(bucket_name)
        if cached is not None:
            return cached

        context = f"resolve(bucket={bucket_name})"
        try:
            topology = self._topology_cache.get()
        except COSError as exc:
            raise add_context(exc, context) from exc
        try:
            buckets = self._list_buckets()
        except COSError as exc:
            raise add_context(exc, f"{context}/ListBuckets") from exc

        bucket = buckets.find(bucket_name)
        if bucket is None:
            raise BucketNotFound(bucket_name)

        placement = parse_location_constraint(bucket.location_constraint, topology)
        host = topology.preferred_host(placement.deployment_type, placement.region, PUBLIC_SCOPE)
        if host is None:
            raise EndpointNotFound(
                f"Can't find endpoint for bucket: {bucket_name} "
                f"(type={placement.deployment_type} region={placement.region})"
            )

        base_url = f"https://{host}"
        self._bucket_urls[bucket_name] = base_url
        logger.debug(
            "Resolved bucket endpoint: bucket=%s location=%s type=%s region=%s url=%s",
            bucket_name, bucket.location_constraint, placement.deployment_type, placement.region, base_url,
        )
        return base_url

    def endpoint_for(self, deployment_type: str, region: str) -> str:
        """Base URL for a deployment type and region, as used when creating a bucket."""
        topology = self._topology_cache.get()
        regions = topology.service_endpoints.get(deployment_type)
        if regions is None:
            raise EndpointNotFound(
                f"Unknown type of region {deployment_type!r} (can be: {','.join(topology.deployment_types())})"
            )
        if region not in regions:
            raise EndpointNotFound(
                f"Unknown region {region!r} (can be: {','.join(topology.regions(deployment_type))})"
            )
        host = topology.preferred_host(deployment_type, region, PUBLIC_SCOPE)
        if host is None:
            raise EndpointNotFound(f"Can't find endpoint for {deployment_type}/{region} region")
        return f"https://{host}"
