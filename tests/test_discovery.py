from __future__ import annotations

import pytest

from spxp_cli.discovery import discover, normalize_domain
from spxp_cli.errors import DiscoveryFailedError, ServiceRequestError


def test_discover_returns_endpoint_triple(service) -> None:
    service.discovery = {"start": "A", "bind": "B", "managementEndpoint": "C"}

    result = discover("spxp.space", client=service)

    assert (result.start, result.bind, result.managementEndpoint) == ("A", "B", "C")
    assert service.calls[0][1] == ("spxp.space",)


def test_missing_field_collapses_into_discovery_failure(service) -> None:
    service.discovery = {"start": "A", "bind": "B"}

    with pytest.raises(DiscoveryFailedError, match="does not provide the SPXP-SPE extension"):
        discover("spxp.space", client=service)


def test_non_string_field_is_rejected(service) -> None:
    service.discovery = {"start": "A", "bind": "B", "managementEndpoint": 7}

    with pytest.raises(DiscoveryFailedError):
        discover("spxp.space", client=service)


def test_transport_error_collapses_into_discovery_failure(service) -> None:
    service.failures["get_discovery_document"] = ServiceRequestError("boom", status_code=500)

    with pytest.raises(DiscoveryFailedError) as excinfo:
        discover("example.org", client=service)

    assert str(excinfo.value) == "example.org does not provide the SPXP-SPE extension"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("spxp.space", "spxp.space"),
        ("https://spxp.space/", "spxp.space"),
        ("  spxp.space  ", "spxp.space"),
    ],
)
def test_normalize_domain(raw: str, expected: str) -> None:
    assert normalize_domain(raw) == expected
