# gwprobe

`gwprobe` decides where readiness probes for an ingress should go when a
Gateway API gateway serves that ingress. It also decides which load-balancer
addresses the ingress reports once its routes are ready.

It has no runtime dependencies. It works only on plain in-memory objects,
all defined in `gwprobe.model`:

- `Endpoints`, `Gateway` and `HTTPRoute`;
- `Backends`, which holds the URLs to probe;
- `IngressStatus`, which holds the load-balancer part of an ingress status.

Objects are looked up through an `ObjectStore`, keyed by namespace and name.
`ObjectStore.get` raises `NotFoundError` for an unknown key, with a message
such as `endpoints "istio-gateway" not found`.

## Installation

```
pip install gwprobe
```

## Probe targets

`gwprobe.lister.GatewayPodTargetLister` turns the URLs in a `Backends` into a
list of `ProbeTarget` objects. A lister can also be created with
`new_probe_target_lister`.

Each `ProbeTarget` holds three things:

- the pod IPs to probe;
- the pod port, as a string;
- the URLs to probe.

Every URL in a target has its scheme set:

- `https` when the visibility is `Visibility.EXTERNAL_IP` and `http_option`
  is `HTTPOption.REDIRECTED`;
- `http` in every other case.

For each visibility, the lister picks a gateway from the `GatewayPlugin`:

- the first local gateway for `Visibility.CLUSTER_LOCAL`;
- the first external gateway for any other visibility.

### Gateways with a service

If the chosen gateway has a `service`, the lister reads that service's
`Endpoints` and makes one target per subset.

The port is chosen as follows:

- The first port in the subset is the default.
- A port whose name matches wins at once. The matching names are `http`,
  `http2` and `http-80`. In the https case they are `https` and `https-443`.
- Otherwise, a port whose `app_protocol` matches is used. The last such port
  in the subset is the one taken.

### Gateways without a service

If the chosen gateway has no `service`, the lister probes the first address in
the `Gateway`'s status. It uses port `80`, or port `443` in the https case.

### Example

```python
from gwprobe.model import (
    Backends, Endpoints, EndpointPort, EndpointSubset, GatewayConfig,
    GatewayPlugin, NamespacedName, ObjectStore, ProbeURL, Visibility,
)
from gwprobe.lister import new_probe_target_lister

gateway = NamespacedName("istio-system", "istio-gateway")
plugin = GatewayPlugin(
    external_gateways=[GatewayConfig(gateway, service=gateway)],
    local_gateways=[GatewayConfig(NamespacedName("istio-system", "knative-local-gateway"))],
)
endpoints = ObjectStore("endpoints", [
    Endpoints("istio-system", "istio-gateway", subsets=[
        EndpointSubset(ports=[EndpointPort("http", 8080)], addresses=["1.2.3.4"]),
    ]),
])
lister = new_probe_target_lister(plugin, endpoints, ObjectStore("gateway", []))

targets = lister.backends_to_probe_targets(Backends(urls={
    Visibility.EXTERNAL_IP: {ProbeURL(host="example.com", path="/")},
}))
# [ProbeTarget(pod_ips={'1.2.3.4'}, pod_port='8080',
#              urls=[ProbeURL(scheme='http', host='example.com', path='/')])]
```

### Errors

`backends_to_probe_targets` raises in these cases:

- `NotFoundError` when a gateway's endpoints cannot be found. The message
  starts with `failed to get endpoints:`.
- `NotFoundError` when a service-less `Gateway` cannot be found.
- `LookupError` when a service-less `Gateway` has no address in its status.
- `LookupError("no gateway pods available")` when none of the targets has a
  pod IP.
- `ValueError` when the plugin has no gateway configured for a visibility.

## Load-balancer status

The `gwprobe.ingress` module provides these checks:

- `is_http_route_ready(route)` is true when the route has parent statuses and
  every parent has an `Accepted` condition whose status is `True`.
- `is_gateway_admitted(parent)` checks one parent's `Accepted` condition.

`LoadBalancerLookup` resolves a configured gateway to `LoadBalancerIngressStatus`
entries:

- **A gateway with a service** reports the service's hostname,
  `<name>.<namespace>.svc.cluster.local`, as `domain_internal`.
- **Any other gateway** reports the first address in its status. An IP
  address goes in `ip`; any other address type goes in `domain_internal`.
- **A missing `Gateway`** marks the status failed, with reason
  `GatewayDoesNotExist`, and raises `GatewayNotFoundError`.
- **A `Gateway` with no address** raises `LookupError`.

`look_up(status, plugin)` returns the external entries and the cluster-local
entries.

`update_status(status, plugin, routes_ready)` sets the `IngressStatus` as
follows:

- **Routes not ready:** marks the load balancer not ready.
- **Gateway missing:** leaves the status failed and does not raise.
- **Any other lookup error:** marks the load balancer not ready and raises
  the error again.
- **Otherwise:** marks the load balancer ready with the external and local
  entries.

## What it does not do

`gwprobe` makes no connection to a cluster and sends no probes. It does not
watch, create or update routes, gateways or ingresses. The caller fills the
object stores and acts on the targets and status it returns.

## Running the tests

```
pip install -e ".[test]"
pytest
```