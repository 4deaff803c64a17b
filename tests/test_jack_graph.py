from __future__ import annotations

from jack_graph import (
    WildcardPattern,
    input_ports,
    node_of,
    output_ports,
    port_suffix,
    resolve_target,
)
from jack_types import JackPort
from models import JackPortIntent, ResolvedTarget, UnresolvedTarget


def _intent(target: str) -> JackPortIntent:
    t = UnresolvedTarget(pattern=target) if "*" in target else ResolvedTarget(name=target)
    return JackPortIntent(source_name="system:capture_1", target_search_name=target, target=t)


def test_wildcard_is_anchored() -> None:
    p = WildcardPattern("*:in_1")
    assert p.matches("a:in_1")
    assert p.matches(":in_1")
    assert not p.matches("a:in_10")
    assert not p.matches("a:in_1x")


def test_wildcard_prefix_and_middle() -> None:
    p = WildcardPattern("baresip-*:input")
    assert p.matches("baresip-4242:input")
    assert not p.matches("xbaresip-4242:input")
    assert not p.matches("baresip:input")

    multi = WildcardPattern("a*b*c")
    assert multi.matches("abc")
    assert multi.matches("a-b-c")
    assert not multi.matches("acb")


def test_literal_pattern_is_exact() -> None:
    p = WildcardPattern("system:playback_1")
    assert not p.has_wildcard
    assert p.matches("system:playback_1")
    assert not p.matches("system:playback_10")


def test_wildcard_keeps_list_order() -> None:
    names = ["z:in_1", "a:in_1", "m:out_1"]
    assert WildcardPattern("*:in_1").filter(names) == ["z:in_1", "a:in_1"]


def test_node_and_suffix() -> None:
    assert node_of("nodeX:in_1") == "nodeX"
    assert port_suffix("nodeX:in_1") == "in_1"
    assert node_of("in_1") == ""
    assert port_suffix("in_1") == "in_1"


def test_affinity_pins_target() -> None:
    names = ["nodeX:in_1", "nodeY:in_1", "nodeZ:in_1"]
    assert resolve_target(_intent("nodeX:in_1"), names, affinity="nodeX") == "nodeX:in_1"
    assert resolve_target(_intent("*:in_1"), names, affinity="nodeX") == "nodeX:in_1"
    assert resolve_target(_intent("*:in_1"), ["nodeY:in_1"], affinity="nodeX") == "nodeX:in_1"


def test_affinity_without_colon_uses_whole_name() -> None:
    assert resolve_target(_intent("in_1"), [], affinity="nodeX") == "nodeX:in_1"


def test_wildcard_prefers_unclaimed_match() -> None:
    names = ["a:in_1", "b:in_1"]
    assert resolve_target(_intent("*:in_1"), names, claimed={"a:in_1"}) == "b:in_1"
    assert resolve_target(_intent("*:in_1"), names, claimed={"a"}) == "b:in_1"
    assert resolve_target(_intent("*:in_1"), names) == "a:in_1"


def test_wildcard_falls_back_to_first_when_all_claimed() -> None:
    names = ["a:in_1", "b:in_1"]
    assert resolve_target(_intent("*:in_1"), names, claimed={"a", "b"}) == "a:in_1"


def test_wildcard_without_match_returns_pattern() -> None:
    assert resolve_target(_intent("baresip-*:input"), ["system:playback_1"]) == "baresip-*:input"


def test_exact_target_returned_verbatim() -> None:
    assert resolve_target(_intent("system:playback_1"), []) == "system:playback_1"


def test_port_direction_helpers() -> None:
    ports = [
        JackPort("system:capture_1", ("output", "physical")),
        JackPort("system:playback_1", ("input", "physical")),
        JackPort("odd:port", ()),
    ]
    assert output_ports(ports) == ["system:capture_1"]
    assert input_ports(ports) == ["system:playback_1"]
