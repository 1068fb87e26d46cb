"""
Session Model

Recorded user sessions as produced by the recorder SDKs and importers: a
header, a delta-timed event log and an element dictionary.

Event payloads are a tagged union keyed by ``kind``. ``parse_event_data``
dispatches every known kind through ``EVENT_PARSERS``; unknown kinds and
known kinds missing required fields become ``UnrecognizedEvent`` so callers
can skip them explicitly.
"""

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, Dict, List, Optional, Union

logger = logging.getLogger(__name__)


class SessionEventType(IntEnum):
    """Wire-level event type codes."""
    TAP = 0
    DOUBLE_TAP = 1
    LONG_PRESS = 2
    SWIPE = 3
    SCROLL = 4
    INPUT = 5
    NAVIGATION = 6
    NETWORK = 7
    SCREEN_CAPTURE = 8
    ERROR = 9
    APP_STATE = 10


# ----------------------------------------------------------------------------
# Event payloads
# ----------------------------------------------------------------------------

@dataclass
class TapEvent:
    kind: str  # tap, double_tap, long_press
    x: float
    y: float
    element_index: Optional[int] = None


@dataclass
class SwipeEvent:
    start_x: float
    start_y: float
    end_x: float
    end_y: float
    duration: float
    direction: str
    kind: str = 'swipe'


@dataclass
class ScrollEvent:
    delta_x: float
    delta_y: float
    container_index: Optional[int] = None
    coalesced: Optional[int] = None
    kind: str = 'scroll'


@dataclass
class InputEvent:
    value: str
    masked: bool = False
    element_index: Optional[int] = None
    input_type: Optional[str] = None
    kind: str = 'input'


@dataclass
class NavigationEvent:
    screen: str
    nav_type: str = 'push'
    params: Optional[Dict[str, Any]] = None
    url: Optional[str] = None
    kind: str = 'navigation'


@dataclass
class NetworkEvent:
    request_id: str
    method: str
    url: str
    phase: str
    status: Optional[int] = None
    duration: Optional[float] = None
    error: Optional[str] = None
    kind: str = 'network'


@dataclass
class ScreenCaptureEvent:
    screenshot_index: int
    trigger: str
    kind: str = 'screen_capture'


@dataclass
class ErrorEvent:
    message: str
    error_type: str = 'js'
    fatal: bool = False
    stack: Optional[str] = None
    kind: str = 'error'


@dataclass
class AppStateEvent:
    state: str
    kind: str = 'app_state'


@dataclass
class UnrecognizedEvent:
    """Payload whose kind is unknown or whose required fields are missing."""
    kind: Optional[str]
    payload: Dict[str, Any] = field(default_factory=dict)
    reason: str = 'unknown kind'


EventData = Union[
    TapEvent, SwipeEvent, ScrollEvent, InputEvent, NavigationEvent,
    NetworkEvent, ScreenCaptureEvent, ErrorEvent, AppStateEvent,
    UnrecognizedEvent,
]


# ----------------------------------------------------------------------------
# Session structure
# ----------------------------------------------------------------------------

@dataclass
class DeviceInfo:
    platform: str = 'web'
    os_version: str = ''
    model: Optional[str] = None
    screen: Dict[str, float] = field(default_factory=dict)
    user_agent: Optional[str] = None
    locale: Optional[str] = None


@dataclass
class AppInfo:
    name: str = 'app'
    version: str = '0.0.0'
    build: Optional[str] = None
    identifier: str = ''


@dataclass
class ElementInfo:
    type: str = 'unknown'
    test_id: Optional[str] = None
    accessibility_label: Optional[str] = None
    text: Optional[str] = None
    css_selector: Optional[str] = None
    bounds: Optional[Dict[str, float]] = None
    attributes: Optional[Dict[str, str]] = None


@dataclass
class SessionHeader:
    session_id: str
    start_time: float
    device: DeviceInfo = field(default_factory=DeviceInfo)
    app: AppInfo = field(default_factory=AppInfo)
    end_time: Optional[float] = None
    schema_version: int = 1


@dataclass
class SessionEvent:
    """A recorded event; ``dt`` is the delay since the previous event (ms)."""
    dt: float
    type: Optional[SessionEventType]
    data: EventData


@dataclass
class Session:
    header: SessionHeader
    events: List[SessionEvent] = field(default_factory=list)
    elements: List[ElementInfo] = field(default_factory=list)
    screenshots: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def session_id(self) -> str:
        return self.header.session_id

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Session':
        return parse_session(data)


# ----------------------------------------------------------------------------
# Parsing
# ----------------------------------------------------------------------------

class _MissingField(Exception):
    pass


def _require(data: Dict[str, Any], key: str) -> Any:
    if data.get(key) is None:
        raise _MissingField(key)
    return data[key]


def _parse_tap(data: Dict[str, Any]) -> TapEvent:
    return TapEvent(
        kind=data['kind'],
        x=_require(data, 'x'),
        y=_require(data, 'y'),
        element_index=data.get('elementIndex'),
    )


def _parse_swipe(data: Dict[str, Any]) -> SwipeEvent:
    return SwipeEvent(
        start_x=_require(data, 'startX'),
        start_y=_require(data, 'startY'),
        end_x=_require(data, 'endX'),
        end_y=_require(data, 'endY'),
        duration=data.get('duration', 0),
        direction=_require(data, 'direction'),
    )


def _parse_scroll(data: Dict[str, Any]) -> ScrollEvent:
    return ScrollEvent(
        delta_x=data.get('deltaX', 0),
        delta_y=data.get('deltaY', 0),
        container_index=data.get('containerIndex'),
        coalesced=data.get('coalesced'),
    )


def _parse_input(data: Dict[str, Any]) -> InputEvent:
    return InputEvent(
        value=data.get('value', ''),
        masked=bool(data.get('masked', False)),
        element_index=data.get('elementIndex'),
        input_type=data.get('inputType'),
    )


def _parse_navigation(data: Dict[str, Any]) -> NavigationEvent:
    screen = _require(data, 'screen')
    if not isinstance(screen, str):
        raise _MissingField('screen')
    return NavigationEvent(
        screen=screen,
        nav_type=data.get('navType', 'push'),
        params=data.get('params'),
        url=data.get('url'),
    )


def _parse_network(data: Dict[str, Any]) -> NetworkEvent:
    return NetworkEvent(
        request_id=data.get('requestId', ''),
        method=data.get('method', 'GET'),
        url=_require(data, 'url'),
        phase=data.get('phase', 'end'),
        status=data.get('status'),
        duration=data.get('duration'),
        error=data.get('error'),
    )


def _parse_screen_capture(data: Dict[str, Any]) -> ScreenCaptureEvent:
    return ScreenCaptureEvent(
        screenshot_index=_require(data, 'screenshotIndex'),
        trigger=data.get('trigger', 'manual'),
    )


def _parse_error(data: Dict[str, Any]) -> ErrorEvent:
    return ErrorEvent(
        message=data.get('message', ''),
        error_type=data.get('errorType', 'js'),
        fatal=bool(data.get('fatal', False)),
        stack=data.get('stack'),
    )


def _parse_app_state(data: Dict[str, Any]) -> AppStateEvent:
    return AppStateEvent(state=_require(data, 'state'))


EVENT_PARSERS: Dict[str, Callable[[Dict[str, Any]], EventData]] = {
    'tap': _parse_tap,
    'double_tap': _parse_tap,
    'long_press': _parse_tap,
    'swipe': _parse_swipe,
    'scroll': _parse_scroll,
    'input': _parse_input,
    'navigation': _parse_navigation,
    'network': _parse_network,
    'screen_capture': _parse_screen_capture,
    'error': _parse_error,
    'app_state': _parse_app_state,
}


def parse_event_data(data: Any) -> EventData:
    """
    Parse one ``data`` payload into its typed variant.

    Args:
        data: Raw payload dictionary with a ``kind`` discriminator

    Returns:
        The matching event dataclass, or ``UnrecognizedEvent`` when the kind
        is unknown or a required field is missing
    """
    if not isinstance(data, dict):
        return UnrecognizedEvent(kind=None, reason='payload is not an object')

    kind = data.get('kind')
    parser = EVENT_PARSERS.get(kind)
    if parser is None:
        return UnrecognizedEvent(kind=kind, payload=dict(data))

    try:
        return parser(data)
    except _MissingField as e:
        return UnrecognizedEvent(kind=kind, payload=dict(data), reason=f"missing field '{e}'")


def parse_session_event(data: Dict[str, Any]) -> SessionEvent:
    raw_type = data.get('type')
    dt = data.get('dt', 0) or 0
    if isinstance(dt, bool) or not isinstance(dt, (int, float)):
        logger.warning(f"⚠️ Non-numeric event delta {dt!r}, using 0")
        dt = 0
    try:
        event_type = SessionEventType(raw_type)
    except ValueError:
        # Keep the payload; the kind discriminator is what consumers read
        logger.debug(f"Unknown event type code {raw_type!r}, using payload kind")
        event_type = None
    return SessionEvent(
        dt=dt,
        type=event_type,
        data=parse_event_data(data.get('data')),
    )


def parse_session(data: Dict[str, Any]) -> Session:
    """Build a ``Session`` from recorder JSON (camelCase keys)."""
    header_data = data.get('header', {})
    device_data = header_data.get('device', {}) or {}
    app_data = header_data.get('app', {}) or {}

    header = SessionHeader(
        session_id=header_data.get('sessionId', ''),
        start_time=header_data.get('startTime', 0) or 0,
        end_time=header_data.get('endTime'),
        schema_version=header_data.get('schemaVersion', 1),
        device=DeviceInfo(
            platform=device_data.get('platform', 'web'),
            os_version=device_data.get('osVersion', ''),
            model=device_data.get('model'),
            screen=device_data.get('screen', {}) or {},
            user_agent=device_data.get('userAgent'),
            locale=device_data.get('locale'),
        ),
        app=AppInfo(
            name=app_data.get('name', 'app'),
            version=app_data.get('version', '0.0.0'),
            build=app_data.get('build'),
            identifier=app_data.get('identifier', ''),
        ),
    )

    elements = [
        ElementInfo(
            type=element.get('type', 'unknown'),
            test_id=element.get('testId'),
            accessibility_label=element.get('accessibilityLabel'),
            text=element.get('text'),
            css_selector=element.get('cssSelector'),
            bounds=element.get('bounds'),
            attributes=element.get('attributes'),
        )
        for element in data.get('elements', []) or []
    ]

    events = []
    for index, event in enumerate(data.get('events', []) or []):
        if not isinstance(event, dict):
            logger.warning(f"⚠️ Skipping non-object event #{index} in session {header.session_id}")
            continue
        events.append(parse_session_event(event))

    return Session(
        header=header,
        events=events,
        elements=elements,
        screenshots=list(data.get('screenshots', []) or []),
    )
