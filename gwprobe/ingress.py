"""Ingress readiness: route admission and load-balancer status lookup."""

from __future__ import annotations

from .model import (
    CONDITION_TRUE,
    ROUTE_CONDITION_ACCEPTED,
    AddressType,
    Gateway,
    GatewayConfig,
    GatewayPlugin,
    HTTPRoute,
    IngressStatus,
    LoadBalancerIngressStatus,
    NotFoundError,
    ObjectStore,
    RouteParentStatus,
)

_CLUSTER_DOMAIN = "cluster.local"


class GatewayNotFoundError(LookupError):
    """Raised when a configured Gateway does not exist."""


def _service_hostname(name: str, namespace: str) -> str:
    return f"{name}.{namespace}.svc.{_CLUSTER_DOMAIN}"


class LoadBalancerLookup:
    """Finds the load-balancer addresses of the gateways in use."""

    def __init__(self, gateways: ObjectStore[Gateway]) -> None:
        self.gateways = gateways

    def collect(
        self, status: IngressStatus, gateway: GatewayConfig
    ) -> list[LoadBalancerIngressStatus]:
        """Return the load-balancer statuses for one configured gateway.

        A gateway fronted by a Service yields the Service hostname; otherwise
        the first address in the Gateway status is used. A missing Gateway
        marks the load balancer failed and raises GatewayNotFoundError.
        """
        if gateway.service is not None:
            hostname = _service_hostname(gateway.service.name, gateway.service.namespace)
            return [LoadBalancerIngressStatus(domain_internal=hostname)]

        where = f"{gateway.namespace}/{gateway.name}"
        try:
            gw = self.gateways.get(gateway.namespace, gateway.name)
        except NotFoundError as exc:
            status.mark_load_balancer_failed(
                "GatewayDoesNotExist", f"could not find Gateway {where}"
            )
            raise GatewayNotFoundError(
                f"error getting Gateway {where}: could not find Gateway"
            ) from exc

        if not gw.addresses:
            raise LookupError(f"no address found in status of Gateway {where}")

        address = gw.addresses[0]
        if address.type == AddressType.IP_ADDRESS:
            return [LoadBalancerIngressStatus(ip=address.value)]
        return [LoadBalancerIngressStatus(domain_internal=address.value)]

    def look_up(
        self, status: IngressStatus, plugin: GatewayPlugin
    ) -> tuple[list[LoadBalancerIngressStatus], list[LoadBalancerIngressStatus]]:
        """Return the external and the cluster-local load-balancer statuses."""
        external = self.collect(status, plugin.external_gateway())
        internal = self.collect(status, plugin.local_gateway())
        return external, internal

    def update_status(
        self, status: IngressStatus, plugin: GatewayPlugin, routes_ready: bool
    ) -> None:
        """Mark the load balancer ready, not ready or failed.

        A missing Gateway leaves the status marked failed without raising,
        since retrying would not help. Other lookup failures mark the load
        balancer not ready and are raised.
        """
        if not routes_ready:
            status.mark_load_balancer_not_ready()
            return
        try:
            external, internal = self.look_up(status, plugin)
        except GatewayNotFoundError:
            return
        except LookupError:
            status.mark_load_balancer_not_ready()
            raise
        status.mark_load_balancer_ready(external, internal)


def is_http_route_ready(route: HTTPRoute) -> bool:
    """Return True when every parent gateway has accepted the route."""
    if route.parents is None:
        return False
    return all(is_gateway_admitted(parent) for parent in route.parents)


def is_gateway_admitted(parent: RouteParentStatus) -> bool:
    """Return True when the parent's Accepted condition is True."""
    for condition in parent.conditions:
        if condition.type == ROUTE_CONDITION_ACCEPTED:
            return condition.status == CONDITION_TRUE
    return False