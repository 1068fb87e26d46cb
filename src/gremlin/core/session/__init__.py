"""
Session Package

Recorded session types and the tagged event-payload parser.
"""

from .types import (
    AppInfo,
    AppStateEvent,
    DeviceInfo,
    ElementInfo,
    ErrorEvent,
    EventData,
    InputEvent,
    NavigationEvent,
    Session,
    SessionEvent,
    SessionEventType,
    SessionHeader,
    TapEvent,
    UnrecognizedEvent,
    parse_event_data,
    parse_session,
)

__all__ = [
    'AppInfo', 'AppStateEvent', 'DeviceInfo', 'ElementInfo', 'ErrorEvent',
    'EventData', 'InputEvent', 'NavigationEvent', 'Session', 'SessionEvent',
    'SessionEventType', 'SessionHeader', 'TapEvent', 'UnrecognizedEvent',
    'parse_event_data', 'parse_session',
]
