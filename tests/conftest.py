"""
Shared builders for recorder-format sessions and extractor-format routes.
"""

from typing import Any, Dict, List, Optional, Sequence

import pytest

from gremlin.core.session.types import Session, parse_session
from gremlin.core.spec.types import (
    ElementRef,
    EventType,
    Provenance,
    Spec,
    StateMetadata,
    TransitionEvent,
    create_spec,
    create_state,
    create_transition,
)


def nav_event(screen: Any, dt: float = 1000, nav_type: str = 'push') -> Dict[str, Any]:
    return {'dt': dt, 'type': 6, 'data': {'kind': 'navigation', 'navType': nav_type, 'screen': screen}}


def error_event(message: str = 'boom', dt: float = 10) -> Dict[str, Any]:
    return {'dt': dt, 'type': 9, 'data': {'kind': 'error', 'message': message, 'errorType': 'js', 'fatal': False}}


def tap_event(element_index: Optional[int] = None, dt: float = 200) -> Dict[str, Any]:
    return {'dt': dt, 'type': 0, 'data': {'kind': 'tap', 'x': 10, 'y': 20, 'elementIndex': element_index}}


def session_record(session_id: str = 's1',
                   screens: Sequence[str] = (),
                   events: Optional[List[Dict[str, Any]]] = None,
                   start_time: float = 0,
                   end_time: Optional[float] = None,
                   app_version: str = '1.0.0') -> Dict[str, Any]:
    """Recorder JSON for one session; ``screens`` become navigation events 1s apart."""
    header = {
        'sessionId': session_id,
        'startTime': start_time,
        'device': {'platform': 'web', 'osVersion': '14'},
        'app': {'name': 'shop', 'version': app_version},
    }
    if end_time is not None:
        header['endTime'] = end_time
    return {
        'header': header,
        'events': events if events is not None else [nav_event(s) for s in screens],
        'elements': [],
        'screenshots': [],
    }


def route_record(path: str, params: Sequence[str] = (), is_index: bool = False) -> Dict[str, Any]:
    return {
        'path': path,
        'params': list(params),
        'filePath': f"app{path or '/'}index.tsx",
        'isIndex': is_index,
        'source': 'file-based',
    }


@pytest.fixture
def make_session():
    """Factory building parsed ``Session`` objects."""
    def _make(screens: Sequence[str] = (), **kwargs) -> Session:
        return parse_session(session_record(screens=screens, **kwargs))
    return _make


@pytest.fixture
def nav():
    return nav_event


@pytest.fixture
def error():
    return error_event


@pytest.fixture
def tap():
    return tap_event


@pytest.fixture
def shop_routes() -> List[Dict[str, Any]]:
    return [
        route_record('/', is_index=True),
        route_record('/products'),
        route_record('/product/[id]', params=['id']),
        route_record('/cart'),
    ]


@pytest.fixture
def shop_session() -> Dict[str, Any]:
    """index -> products -> product detail -> products -> cart."""
    return session_record(
        session_id='shop-1',
        screens=['/', '/products', '/product/[id]', '/products', '/cart'],
        start_time=1000,
        end_time=7000,
    )


def build_checkout_spec() -> Spec:
    """Hand-built spec with element-level transitions.

    index -(tap shop-btn)-> products -(tap "View")-> product_:id
    -(tap add-to-cart)-> cart -(bare navigation)-> index, plus a search
    input on products. ``products -> product_:id`` is the most frequent.
    """
    spec = create_spec('shop', 'web')
    for state_id, route in [('index', '/'), ('products', '/products'),
                            ('product_:id', '/product/[id]'), ('cart', '/cart')]:
        state = create_state(state_id, state_id)
        state.metadata = StateMetadata(source=Provenance.BOTH, route=route)
        spec.states.append(state)

    edges = [
        ('t1', 'index', 'products', EventType.TAP, ElementRef(test_id='shop-btn'), 5),
        ('t2', 'products', 'product_:id', EventType.TAP, ElementRef(text='View', type='button'), 9),
        ('t3', 'product_:id', 'cart', EventType.TAP, ElementRef(test_id='add-to-cart'), 2),
        ('t4', 'cart', 'index', EventType.NAVIGATION, None, 1),
        ('t5', 'products', 'products', EventType.INPUT, ElementRef(test_id='search-input'), 4),
    ]
    for transition_id, source, target, event_type, element, frequency in edges:
        transition = create_transition(transition_id, source, target,
                                       TransitionEvent(type=event_type, element=element))
        transition.frequency = frequency
        spec.transitions.append(transition)

    spec.initial_state = 'index'
    return spec


@pytest.fixture
def checkout_spec() -> Spec:
    return build_checkout_spec()
