import pytest

from gwprobe.lister import GatewayPodTargetLister, new_probe_target_lister
from gwprobe.model import (
    AddressType,
    Backends,
    EndpointPort,
    Endpoints,
    EndpointSubset,
    Gateway,
    GatewayAddress,
    GatewayConfig,
    GatewayPlugin,
    HTTPOption,
    NamespacedName,
    NotFoundError,
    ObjectStore,
    ProbeTarget,
    ProbeURL,
    Visibility,
)

TEST_NAMESPACE = "istio-system"
PUBLIC_NAME = "istio-gateway"
PRIVATE_NAME = "knative-local-gateway"
PUBLIC_GATEWAY_ADDRESS = "11.22.33.44"

EXT = Visibility.EXTERNAL_IP
LOCAL = Visibility.CLUSTER_LOCAL


def _gw_config(name, with_service):
    nn = NamespacedName(TEST_NAMESPACE, name)
    return GatewayConfig(nn, nn if with_service else None)


DEFAULT_PLUGIN = GatewayPlugin(
    [_gw_config(PUBLIC_NAME, True)], [_gw_config(PRIVATE_NAME, True)]
)
NO_SERVICE_PLUGIN = GatewayPlugin(
    [_gw_config(PUBLIC_NAME, False)], [_gw_config(PRIVATE_NAME, False)]
)


def _eps(name, *subsets):
    return Endpoints(TEST_NAMESPACE, name, list(subsets))


def _subset(ports, addresses=()):
    return EndpointSubset(
        addresses=list(addresses), ports=[EndpointPort(n, p) for n, p in ports]
    )


PRIVATE_ONE = _eps(PRIVATE_NAME, _subset([("http", 8081)], ["1.2.3.4"]))
PUBLIC_ONE = _eps(PUBLIC_NAME, _subset([("http", 8080)], ["1.2.3.4"]))
PUBLIC_SSL_ONE = _eps(PUBLIC_NAME, _subset([("http", 8443)], ["1.2.3.4"]))
PRIVATE_MULTI = _eps(
    PRIVATE_NAME,
    _subset([("asdf", 1234)], ["2.3.4.5"]),
    _subset([("http2", 4321), ("admin", 1337)], ["3.4.5.6", "4.3.2.1"]),
)
PUBLIC_MULTI = _eps(
    PUBLIC_NAME,
    _subset([("asdf", 1230)], ["2.3.4.6"]),
    _subset([("asdf", 4320)], ["3.4.5.7", "4.3.2.0"]),
)
PRIVATE_NO_ADDR = _eps(PRIVATE_NAME, _subset([("fdsa", 32)]))
PUBLIC_NO_ADDR = _eps(PUBLIC_NAME, _subset([("fdsa", 32)]))


def _url(host, path, scheme=""):
    return ProbeURL(scheme, host, path)


def _target(ips, port, urls):
    return ProbeTarget(set(ips), port, list(urls))


def _normalize(targets):
    return sorted(
        (sorted(t.pod_ips), t.pod_port, sorted(str(u) for u in t.urls)) for t in targets
    )


def _lister(plugin, endpoints=(), gateways=()):
    return GatewayPodTargetLister(
        plugin,
        ObjectStore("endpoints", endpoints),
        ObjectStore("gateway.gateway.networking.k8s.io", gateways),
    )


EXAMPLE = {_url("example.com", "/")}

SUCCESS_CASES = [
    pytest.param(
        [PRIVATE_ONE, PUBLIC_ONE],
        Backends({EXT: EXAMPLE}),
        [_target(["1.2.3.4"], "8080", [_url("example.com", "/", "http")])],
        id="single address to probe",
    ),
    pytest.param(
        [PRIVATE_ONE, PUBLIC_SSL_ONE],
        Backends({EXT: EXAMPLE}, HTTPOption.REDIRECTED),
        [_target(["1.2.3.4"], "8443", [_url("example.com", "/", "https")])],
        id="endpoint with single address (https redirected)",
    ),
    pytest.param(
        [PRIVATE_MULTI, PUBLIC_MULTI],
        Backends({LOCAL: EXAMPLE}, HTTPOption.REDIRECTED),
        [
            _target(["2.3.4.5"], "1234", [_url("example.com", "/", "http")]),
            _target(["3.4.5.6", "4.3.2.1"], "4321", [_url("example.com", "/", "http")]),
        ],
        id="multiple addresses and subsets",
    ),
    pytest.param(
        [PRIVATE_MULTI, PUBLIC_MULTI],
        Backends(
            {
                EXT: {
                    _url("example.com", "/"),
                    _url("example.com", "/.well-known/knative"),
                },
                LOCAL: {
                    _url("rev.default.svc.cluster.local", "/"),
                    _url("rev.default.svc.cluster.local", "/.well-known/knative"),
                },
            }
        ),
        [
            _target(
                ["2.3.4.6"],
                "1230",
                [
                    _url("example.com", "/", "http"),
                    _url("example.com", "/.well-known/knative", "http"),
                ],
            ),
            _target(
                ["3.4.5.7", "4.3.2.0"],
                "4320",
                [
                    _url("example.com", "/", "http"),
                    _url("example.com", "/.well-known/knative", "http"),
                ],
            ),
            _target(
                ["2.3.4.5"],
                "1234",
                [
                    _url("rev.default.svc.cluster.local", "/", "http"),
                    _url("rev.default.svc.cluster.local", "/.well-known/knative", "http"),
                ],
            ),
            _target(
                ["3.4.5.6", "4.3.2.1"],
                "4321",
                [
                    _url("rev.default.svc.cluster.local", "/", "http"),
                    _url("rev.default.svc.cluster.local", "/.well-known/knative", "http"),
                ],
            ),
        ],
        id="complex case",
    ),
]


@pytest.mark.parametrize("objects,backends,want", SUCCESS_CASES)
def test_backends_to_probe_targets(objects, backends, want):
    got = _lister(DEFAULT_PLUGIN, objects).backends_to_probe_targets(backends)
    assert _normalize(got) == _normalize(want)


ERROR_CASES = [
    pytest.param(
        [PUBLIC_ONE],
        Backends({LOCAL: EXAMPLE}),
        NotFoundError,
        f'failed to get endpoints: endpoints "{PRIVATE_NAME}" not found',
        id="no local endpoint",
    ),
    pytest.param(
        [PRIVATE_NO_ADDR],
        Backends({EXT: EXAMPLE}),
        NotFoundError,
        f'failed to get endpoints: endpoints "{PUBLIC_NAME}" not found',
        id="no external endpoint",
    ),
    pytest.param(
        [PRIVATE_NO_ADDR, PUBLIC_ONE],
        Backends({LOCAL: EXAMPLE}),
        LookupError,
        "no gateway pods available",
        id="local endpoint without address",
    ),
    pytest.param(
        [PRIVATE_ONE, PUBLIC_NO_ADDR],
        Backends({EXT: EXAMPLE}),
        LookupError,
        "no gateway pods available",
        id="external endpoint without address",
    ),
]


@pytest.mark.parametrize("objects,backends,error,message", ERROR_CASES)
def test_backends_to_probe_targets_errors(objects, backends, error, message):
    with pytest.raises(error) as info:
        _lister(DEFAULT_PLUGIN, objects).backends_to_probe_targets(backends)
    assert str(info.value) == message


def _public_gateway(with_address=True):
    addresses = (
        [GatewayAddress(AddressType.IP_ADDRESS, PUBLIC_GATEWAY_ADDRESS)]
        if with_address
        else []
    )
    return Gateway(TEST_NAMESPACE, PUBLIC_NAME, addresses)


@pytest.mark.parametrize(
    "option,port,scheme",
    [
        pytest.param(HTTPOption.ENABLED, "80", "http", id="http enabled"),
        pytest.param(HTTPOption.REDIRECTED, "443", "https", id="https redirected"),
    ],
)
def test_list_probe_targets_no_service(option, port, scheme):
    lister = _lister(NO_SERVICE_PLUGIN, gateways=[_public_gateway()])
    got = lister.backends_to_probe_targets(Backends({EXT: EXAMPLE}, option))
    assert got == [
        ProbeTarget({PUBLIC_GATEWAY_ADDRESS}, port, [_url("example.com", "/", scheme)])
    ]


def test_list_probe_targets_no_service_no_addresses():
    lister = _lister(NO_SERVICE_PLUGIN, gateways=[_public_gateway(False)])
    with pytest.raises(LookupError) as info:
        lister.backends_to_probe_targets(Backends({EXT: EXAMPLE}, HTTPOption.REDIRECTED))
    assert (
        str(info.value)
        == "no addresses available in status of Gateway istio-system/istio-gateway"
    )


def test_list_probe_targets_no_service_missing_gateway():
    lister = _lister(NO_SERVICE_PLUGIN)
    with pytest.raises(NotFoundError, match="does not exist"):
        lister.backends_to_probe_targets(Backends({EXT: EXAMPLE}))


def test_app_protocol_match_is_used_when_no_name_matches():
    eps = Endpoints(
        TEST_NAMESPACE,
        PUBLIC_NAME,
        [
            EndpointSubset(
                addresses=["1.2.3.4"],
                ports=[
                    EndpointPort("admin", 1337),
                    EndpointPort("web", 8080, app_protocol="http"),
                ],
            )
        ],
    )
    lister = new_probe_target_lister(
        DEFAULT_PLUGIN,
        ObjectStore("endpoints", [eps]),
        ObjectStore("gateway.gateway.networking.k8s.io", []),
    )
    got = lister.backends_to_probe_targets(Backends({EXT: EXAMPLE}))
    assert [t.pod_port for t in got] == ["8080"]


def test_input_urls_are_not_modified():
    url = _url("example.com", "/")
    backends = Backends({EXT: {url}})
    _lister(DEFAULT_PLUGIN, [PUBLIC_ONE]).backends_to_probe_targets(backends)
    assert backends.urls[EXT] == {url}
    assert url.scheme == ""