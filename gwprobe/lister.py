"""Turn probe backends into concrete gateway pod targets."""

from __future__ import annotations

from .model import (
    Backends,
    Endpoints,
    Gateway,
    GatewayConfig,
    GatewayPlugin,
    HTTPOption,
    NotFoundError,
    ObjectStore,
    ProbeTarget,
    ProbeURL,
    Visibility,
)

_HTTP_PORT_NAMES = frozenset({"http", "http2", "http-80"})
_HTTPS_PORT_NAMES = frozenset({"https", "https-443"})


class GatewayPodTargetLister:
    """Resolves backends to the gateway pods or addresses that serve them."""

    def __init__(
        self,
        plugin: GatewayPlugin,
        endpoints: ObjectStore[Endpoints],
        gateways: ObjectStore[Gateway],
    ) -> None:
        self.plugin = plugin
        self.endpoints = endpoints
        self.gateways = gateways

    def backends_to_probe_targets(self, backends: Backends) -> list[ProbeTarget]:
        """Return the probe targets for all backend URLs.

        Raises NotFoundError when a gateway or its endpoints are missing and
        LookupError when no pod or address is available to probe.
        """
        found = 0
        targets: list[ProbeTarget] = []

        for visibility, urls in backends.urls.items():
            if visibility == Visibility.CLUSTER_LOCAL:
                gateway = self.plugin.local_gateway()
            else:
                gateway = self.plugin.external_gateway()
            secure = (
                visibility == Visibility.EXTERNAL_IP
                and backends.http_option == HTTPOption.REDIRECTED
            )

            if gateway.service is not None:
                new_targets = self._service_targets(gateway, urls, secure)
            else:
                new_targets = self._gateway_targets(gateway, urls, secure)

            for target in new_targets:
                if target.urls:
                    found += len(target.pod_ips)
                    targets.append(target)

        if found == 0:
            raise LookupError("no gateway pods available")
        return targets

    def _service_targets(self, gateway: GatewayConfig, urls, secure: bool):
        service = gateway.service
        try:
            eps = self.endpoints.get(service.namespace, service.name)
        except NotFoundError as exc:
            raise NotFoundError(f"failed to get endpoints: {exc}") from exc

        scheme = "https" if secure else "http"
        match_names = _HTTPS_PORT_NAMES if secure else _HTTP_PORT_NAMES

        for subset in eps.subsets:
            port_number = subset.ports[0].port
            for port in subset.ports:
                if port.name in match_names:
                    # An exact name match wins over an app protocol match.
                    port_number = port.port
                    break
                if port.app_protocol is not None and port.app_protocol in match_names:
                    port_number = port.port
            yield ProbeTarget(
                pod_ips=set(subset.addresses),
                pod_port=str(port_number),
                urls=[url.with_scheme(scheme) for url in urls],
            )

    def _gateway_targets(self, gateway: GatewayConfig, urls, secure: bool):
        try:
            gw = self.gateways.get(gateway.namespace, gateway.name)
        except NotFoundError as exc:
            raise NotFoundError(
                f'Gateway "{gateway.namespaced_name}" does not exist: {exc}'
            ) from exc

        # Only listener ports 80 and 443 are supported without a Service.
        scheme, pod_port = ("https", "443") if secure else ("http", "80")

        if not gw.addresses:
            raise LookupError(
                f"no addresses available in status of Gateway {gw.namespace}/{gw.name}"
            )

        yield ProbeTarget(
            pod_ips={gw.addresses[0].value},
            pod_port=pod_port,
            urls=[url.with_scheme(scheme) for url in urls],
        )


def new_probe_target_lister(
    plugin: GatewayPlugin,
    endpoints: ObjectStore[Endpoints],
    gateways: ObjectStore[Gateway],
) -> GatewayPodTargetLister:
    """Create a lister over the given stores."""
    return GatewayPodTargetLister(plugin, endpoints, gateways)