"""Plain data types for gateways, endpoints, routes and probe targets."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Generic, Iterable, Protocol, TypeVar

CONDITION_TRUE = "True"
CONDITION_FALSE = "False"
CONDITION_UNKNOWN = "Unknown"

ROUTE_CONDITION_ACCEPTED = "Accepted"


class NotFoundError(LookupError):
    """Raised when a requested object does not exist."""


@dataclass(frozen=True)
class NamespacedName:
    """A namespace and name pair that identifies an object."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True)
class GatewayConfig:
    """One configured gateway, optionally fronted by a Service."""

    namespaced_name: NamespacedName
    service: NamespacedName | None = None

    @property
    def namespace(self) -> str:
        return self.namespaced_name.namespace

    @property
    def name(self) -> str:
        return self.namespaced_name.name


@dataclass
class GatewayPlugin:
    """The external and cluster-local gateways in use."""

    external_gateways: list[GatewayConfig] = field(default_factory=list)
    local_gateways: list[GatewayConfig] = field(default_factory=list)

    def external_gateway(self) -> GatewayConfig:
        """Return the gateway used for external traffic."""
        if not self.external_gateways:
            raise ValueError("no external gateway configured")
        return self.external_gateways[0]

    def local_gateway(self) -> GatewayConfig:
        """Return the gateway used for cluster-local traffic."""
        if not self.local_gateways:
            raise ValueError("no local gateway configured")
        return self.local_gateways[0]


class Visibility(str, Enum):
    EXTERNAL_IP = "ExternalIP"
    CLUSTER_LOCAL = "ClusterLocal"


class HTTPOption(str, Enum):
    ENABLED = "Enabled"
    REDIRECTED = "Redirected"


class AddressType(str, Enum):
    IP_ADDRESS = "IPAddress"
    HOSTNAME = "Hostname"
    NAMED_ADDRESS = "NamedAddress"


@dataclass(frozen=True)
class ProbeURL:
    """A URL to probe, reduced to scheme, host and path."""

    scheme: str = ""
    host: str = ""
    path: str = ""

    def __str__(self) -> str:
        text = f"{self.scheme}:" if self.scheme else ""
        if self.host:
            text += f"//{self.host}"
        return text + self.path

    def with_scheme(self, scheme: str) -> ProbeURL:
        """Return a copy of this URL with another scheme."""
        return replace(self, scheme=scheme)


@dataclass(frozen=True)
class EndpointPort:
    name: str
    port: int
    app_protocol: str | None = None


@dataclass
class EndpointSubset:
    addresses: list[str] = field(default_factory=list)
    ports: list[EndpointPort] = field(default_factory=list)


@dataclass
class Endpoints:
    namespace: str
    name: str
    subsets: list[EndpointSubset] = field(default_factory=list)


@dataclass(frozen=True)
class GatewayAddress:
    type: AddressType | None
    value: str


@dataclass
class Gateway:
    namespace: str
    name: str
    addresses: list[GatewayAddress] = field(default_factory=list)


@dataclass(frozen=True)
class RouteCondition:
    type: str
    status: str


@dataclass
class RouteParentStatus:
    conditions: list[RouteCondition] = field(default_factory=list)


@dataclass
class HTTPRoute:
    namespace: str
    name: str
    parents: list[RouteParentStatus] | None = None


@dataclass
class Backends:
    """The URLs to probe, grouped by visibility."""

    urls: dict[Visibility, set[ProbeURL]] = field(default_factory=dict)
    http_option: HTTPOption = HTTPOption.ENABLED
    version: str = ""


@dataclass
class ProbeTarget:
    """A set of pod IPs on one port and the URLs to probe on them."""

    pod_ips: set[str] = field(default_factory=set)
    pod_port: str = ""
    urls: list[ProbeURL] = field(default_factory=list)


@dataclass(frozen=True)
class LoadBalancerIngressStatus:
    ip: str = ""
    domain: str = ""
    domain_internal: str = ""


@dataclass
class IngressStatus:
    """The load-balancer part of an ingress status."""

    load_balancer_condition: str = CONDITION_UNKNOWN
    load_balancer_reason: str = ""
    load_balancer_message: str = ""
    public_load_balancer: list[LoadBalancerIngressStatus] = field(default_factory=list)
    private_load_balancer: list[LoadBalancerIngressStatus] = field(default_factory=list)

    def mark_load_balancer_ready(
        self,
        external: Iterable[LoadBalancerIngressStatus],
        internal: Iterable[LoadBalancerIngressStatus],
    ) -> None:
        self.public_load_balancer = list(external)
        self.private_load_balancer = list(internal)
        self.load_balancer_condition = CONDITION_TRUE
        self.load_balancer_reason = ""
        self.load_balancer_message = ""

    def mark_load_balancer_not_ready(self) -> None:
        self.load_balancer_condition = CONDITION_UNKNOWN
        self.load_balancer_reason = "Uninitialized"
        self.load_balancer_message = "Waiting for load balancer to be ready"

    def mark_load_balancer_failed(self, reason: str, message: str) -> None:
        self.load_balancer_condition = CONDITION_FALSE
        self.load_balancer_reason = reason
        self.load_balancer_message = message


class _Named(Protocol):
    namespace: str
    name: str


T = TypeVar("T", bound=_Named)


class ObjectStore(Generic[T]):
    """An index of objects of one kind by namespace and name."""

    def __init__(self, kind: str, objects: Iterable[T] = ()) -> None:
        self.kind = kind
        self._objects = {(obj.namespace, obj.name): obj for obj in objects}

    def get(self, namespace: str, name: str) -> T:
        """Return the object, or raise NotFoundError."""
        try:
            return self._objects[(namespace, name)]
        except KeyError:
            raise NotFoundError(f'{self.kind} "{name}" not found') from None

    def __len__(self) -> int:
        return len(self._objects)