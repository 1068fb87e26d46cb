"""
Tests for merging routes and sessions into a provenance-tagged spec.
"""

from gremlin.analysis.merger import SpecMerger, merge_specs
from gremlin.core.routes import Route
from gremlin.core.spec.types import EventType, Provenance

from conftest import nav_event, route_record, session_record


def _by_id(items):
    return {item.id: item for item in items}


class TestEndToEnd:

    def test_all_states_are_in_both_sources(self, shop_routes, shop_session):
        spec = merge_specs(shop_routes, [shop_session], platform="web", app_name="shop")

        assert [s.id for s in spec.states] == ["index", "products", "product_:id", "cart"]
        assert all(s.provenance is Provenance.BOTH for s in spec.states)

        states = _by_id(spec.states)
        assert states["product_:id"].metadata.route == "/product/[id]"
        assert states["product_:id"].metadata.params == ["id"]
        assert states["products"].observed_count == 2
        assert states["product_:id"].observed_count == 1

    def test_transitions_and_frequencies(self, shop_routes, shop_session):
        spec = merge_specs(shop_routes, [shop_session])

        edges = {(t.from_state, t.to_state): t for t in spec.transitions}
        assert set(edges) == {
            ("index", "products"),
            ("products", "product_:id"),
            ("product_:id", "products"),
            ("products", "cart"),
        }
        for transition in spec.transitions:
            assert transition.frequency == 1
            assert transition.provenance is Provenance.SESSION
            assert transition.event.type is EventType.NAVIGATION
            assert transition.event.data == {"screen": transition.to_state}

        assert edges[("index", "products")].id == "index->products"

    def test_metadata(self, shop_routes, shop_session):
        first = session_record(session_id="shop-2", screens=["/"], app_version="1.1.0")
        last = session_record(session_id="shop-3", screens=["/"], app_version="1.0.0")

        spec = merge_specs(shop_routes, [first, shop_session, last], platform="web", app_name="shop")

        assert spec.name == "shop"
        assert spec.metadata.platform == "web"
        assert spec.metadata.session_count == 3
        assert spec.metadata.app_versions == ["1.0.0", "1.1.0"]

    def test_dwell_times(self, shop_routes, shop_session):
        spec = merge_specs(shop_routes, [shop_session])

        # Navigations are 1s apart and the session ends 1s after the last one
        for state in spec.states:
            assert state.avg_duration == 1000
        assert all(t.avg_duration is None for t in spec.transitions)


def test_merge_is_deterministic(shop_routes, shop_session):
    other = session_record(session_id="shop-2", screens=["/cart", "/products", "/cart"])

    first = merge_specs(shop_routes, [shop_session, other])
    second = merge_specs(shop_routes, [shop_session, other])

    assert first.states == second.states
    assert first.transitions == second.transitions
    assert first.initial_state == second.initial_state


def test_incoming_frequency_never_exceeds_observations(shop_routes, shop_session):
    sessions = [
        shop_session,
        session_record(session_id="b", screens=["/cart", "/", "/cart", "/products"]),
        session_record(session_id="c", screens=["/products", "/products", "/about"]),
    ]
    spec = merge_specs(shop_routes, sessions)

    for state in spec.states:
        incoming = sum(t.frequency for t in spec.transitions if t.to_state == state.id)
        assert incoming <= state.observed_count


def test_renavigation_to_same_screen_is_not_a_transition():
    spec = merge_specs([], [session_record(screens=["/", "/", "index", "/products"])])

    states = _by_id(spec.states)
    assert states["index"].observed_count == 1
    assert [(t.from_state, t.to_state) for t in spec.transitions] == [("index", "products")]


def test_repeated_edges_accumulate_frequency():
    spec = merge_specs([], [
        session_record(session_id="a", screens=["/", "/cart", "/", "/cart"]),
        session_record(session_id="b", screens=["/", "/cart"]),
    ])

    edges = {(t.from_state, t.to_state): t.frequency for t in spec.transitions}
    assert edges == {("index", "cart"): 3, ("cart", "index"): 1}


def test_session_only_states_have_session_provenance(shop_routes):
    spec = merge_specs(shop_routes, [session_record(screens=["/", "/about"])])

    states = _by_id(spec.states)
    assert states["about"].provenance is Provenance.SESSION
    assert states["about"].metadata.route is None
    assert states["cart"].provenance is Provenance.AST
    assert states["cart"].observed_count == 0
    # Session-only states follow route states in first-seen order
    assert spec.states[-1].id == "about"


def test_concrete_url_is_not_matched_to_dynamic_route(shop_routes):
    spec = merge_specs(shop_routes, [session_record(screens=["/products", "/product/42"])])

    states = _by_id(spec.states)
    assert states["product_42"].provenance is Provenance.SESSION
    assert states["product_:id"].observed_count == 0


def test_duplicate_routes_collapse_into_one_state():
    spec = merge_specs([route_record("/cart"), route_record("cart/")], [])
    assert [s.id for s in spec.states] == ["cart"]


class TestInitialState:

    def test_most_observed_state_wins(self, shop_routes, shop_session):
        spec = merge_specs(shop_routes, [shop_session])
        assert spec.initial_state == "products"

    def test_ties_keep_first_encountered(self):
        spec = merge_specs([], [session_record(screens=["/a", "/b"])])
        assert spec.initial_state == "a"

    def test_first_route_without_observations(self, shop_routes):
        spec = merge_specs(shop_routes, [])
        assert spec.initial_state == "index"

    def test_placeholder_without_any_input(self):
        spec = merge_specs([], [])
        assert spec.initial_state == "initial"
        assert spec.states == []
        assert spec.transitions == []
        assert spec.metadata.session_count == 0


class TestMalformedInput:

    def test_malformed_routes_and_sessions_are_skipped(self, shop_routes, shop_session):
        merger = SpecMerger()
        spec = merger.merge(
            shop_routes + [{"params": []}, {"path": "/x", "source": "telepathy"}],
            [shop_session, "not a session"],
        )

        assert len(spec.states) == 4
        assert spec.metadata.session_count == 1
        counts = merger.issues.count_by_type()
        assert counts["malformed_route"] == 2
        assert counts["malformed_session"] == 1

    def test_bad_navigation_events_are_skipped(self):
        events = [
            nav_event("/"),
            {"dt": 10, "type": 6, "data": {"kind": "navigation", "navType": "push"}},
            nav_event(""),
            nav_event("   "),
            {"dt": 10, "type": 2, "data": {"kind": "hologram"}},
            nav_event("/cart"),
        ]
        merger = SpecMerger()
        spec = merger.merge([], [session_record(events=events)])

        assert [(t.from_state, t.to_state) for t in spec.transitions] == [("index", "cart")]
        counts = merger.issues.count_by_type()
        assert counts == {"malformed_navigation": 1, "empty_screen": 2, "unrecognized_event": 1}
        assert merger.issues.get_summary()["total_issues"] == 4

    def test_bad_event_envelopes_do_not_abort_the_merge(self):
        bad = session_record(session_id="bad", events=[
            nav_event("/"),
            {"dt": 10, "type": 0, "data": "tap"},
            nav_event("/cart"),
        ])
        bad["events"][0]["dt"] = "5"
        good = session_record(session_id="good", screens=["/", "/about"])

        merger = SpecMerger()
        spec = merger.merge([], [bad, good])

        assert spec.metadata.session_count == 2
        assert sorted((t.from_state, t.to_state) for t in spec.transitions) == [
            ("index", "about"), ("index", "cart"),
        ]
        assert merger.issues.count_by_type() == {"unrecognized_event": 1}

    def test_merge_state_does_not_leak_between_calls(self, shop_routes, shop_session):
        merger = SpecMerger()
        merger.merge(shop_routes, [shop_session, "bad"])
        spec = merger.merge(shop_routes, [])

        assert all(s.observed_count == 0 for s in spec.states)
        assert spec.transitions == []
        assert len(merger.issues) == 0


def test_accepts_parsed_routes_and_sessions(make_session):
    routes = [Route(path="/"), Route(path="/cart")]
    spec = merge_specs(routes, [make_session(["/", "/cart"])])

    assert all(s.provenance is Provenance.BOTH for s in spec.states)
    assert len(spec.transitions) == 1
