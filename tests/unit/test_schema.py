from __future__ import annotations

from wg_access_config.domain.schema import BACKEND_GROUPS, FIELD_TYPES, GROUPS, defaults_layer


def test_groups_are_derived_from_leaf_keys() -> None:
    assert {"storage", "wireguard", "vpn", "vpn.rules", "dns", "auth"} <= GROUPS
    assert BACKEND_GROUPS <= GROUPS
    assert not GROUPS & set(FIELD_TYPES)


def test_defaults_cover_required_fields() -> None:
    defaults = defaults_layer()
    assert defaults["loglevel"] == "info"
    assert defaults["wireguard"] == {"interfaceName": "wg0", "privateKey": "", "port": 51820}
    assert defaults["vpn"]["rules"] == {"allowVPNLAN": True, "allowServerLAN": True, "allowInternet": True}
    assert "auth" not in defaults


def test_defaults_layer_returns_independent_copies() -> None:
    first = defaults_layer()
    first["dns"]["upstream"].append("1.1.1.1")
    assert defaults_layer()["dns"]["upstream"] == []
