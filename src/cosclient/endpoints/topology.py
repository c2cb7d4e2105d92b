"""Service endpoint discovery document and its cache.

The discovery document maps deployment type -> region -> visibility scope ->
endpoint name -> host, for example::

    service-endpoints:
      cross-region: {us: {public: {us-geo: s3.us.cloud-object-storage.appdomain.cloud}}}
      regional:     {us-south: {private: {us-south: s3.private.us-south...}}}
      single-site:  {ams03: {direct: {ams03: s3.direct.ams03...}}}

One :class:`TopologyCache` can be shared by every client in a process.
"""

from __future__ import annotations

from typing import Optional

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cosclient.errors import TopologyFetchFailed
from cosclient.logging_config import get_logger

CROSS_REGION = "cross-region"
REGIONAL = "regional"
SINGLE_SITE = "single-site"
PUBLIC_SCOPE = "public"

logger = get_logger(__name__)

# scope -> endpoint name -> host
ScopeMap = dict[str, dict[str, str]]


class IdentityEndpoints(BaseModel):
    model_config = ConfigDict(extra='ignore', populate_by_name=True)
    iam_token: Optional[str] = Field(None, alias="iam-token")
    iam_policy: Optional[str] = Field(None, alias="iam-policy")


class EndpointTopology(BaseModel):
    model_config = ConfigDict(extra='ignore', populate_by_name=True, frozen=True)
    identity_endpoints: IdentityEndpoints = Field(default_factory=IdentityEndpoints, alias="identity-endpoints")
    service_endpoints: dict[str, dict[str, ScopeMap]] = Field(default_factory=dict, alias="service-endpoints")

    def deployment_types(self) -> list[str]:
        return sorted(self.service_endpoints)

    def regions(self, deployment_type: str) -> list[str]:
        return sorted(self.service_endpoints.get(deployment_type, {}))

    def is_single_site(self, region: str) -> bool:
        return region in self.service_endpoints.get(SINGLE_SITE, {})

    def hosts(self, deployment_type: str, region: str, scope: str = PUBLIC_SCOPE) -> dict[str, str]:
        return dict(self.service_endpoints.get(deployment_type, {}).get(region, {}).get(scope, {}))

    def preferred_host(self, deployment_type: str, region: str, scope: str = PUBLIC_SCOPE) -> str | None:
        """Pick one host for a region deterministically: the smallest host name."""
        hosts = self.hosts(deployment_type, region, scope)
        if not hosts:
            return None
        return min(hosts.values())


class TopologyCache:
    """Fetches the discovery document once and keeps it until invalidated.

    Concurrent first fetches may each hit the network; whichever finishes
    last is kept. The document itself is never mutated after assignment.
    """

    def __init__(self, endpoints_url: str, session: requests.Session, timeout: float = 30.0, verify: bool = True) -> None:
        self._endpoints_url = endpoints_url
        self._session = session
        self._timeout = timeout
        self._verify = verify
        self._topology: EndpointTopology | None = None

    @property
    def is_populated(self) -> bool:
        return self._topology is not None

    def get(self) -> EndpointTopology:
        topology = self._topology
        if topology is not None:
            return topology
        topology = self._fetch()
        self._topology = topology
        return topology

    def invalidate(self) -> None:
        self._topology = None
        logger.info("Endpoint topology cache invalidated: url=%s", self._endpoints_url)

    def _fetch(self) -> EndpointTopology:
        logger.info("Fetching endpoint topology: url=%s", self._endpoints_url)
        try:
            response = self._session.get(self._endpoints_url, timeout=self._timeout, verify=self._verify)
            response.raise_for_status()
        except requests.exceptions.RequestException as exc:
            raise TopologyFetchFailed(f"Error reading endpoints from {self._endpoints_url}: {exc}") from exc
        try:
            topology = EndpointTopology.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise TopologyFetchFailed(f"Error parsing endpoints from {self._endpoints_url}: {exc}") from exc
        logger.debug(
            "Endpoint topology loaded: deployment_types=%s",
            {kind: len(regions) for kind, regions in topology.service_endpoints.items()},
        )
        return topology
