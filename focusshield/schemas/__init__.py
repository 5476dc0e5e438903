from .records import (
    RecordKind,
    LocalOnly,
    Synced,
    SyncState,
    FocusSession,
    ShipNote,
    MeetingBlock,
    SessionWithNote,
    LocalStorageData,
    RECORD_MODELS,
)
from .report import WeeklyReport, WeeklyReportView
from .user import AuthUser, SignInRequest, LoginTrackingResponse
from .billing import SubscriptionStatus, SubscriptionResponse, CheckoutRequest, CheckoutResponse

__all__ = [
    'RecordKind',
    'LocalOnly',
    'Synced',
    'SyncState',
    'FocusSession',
    'ShipNote',
    'MeetingBlock',
    'SessionWithNote',
    'LocalStorageData',
    'RECORD_MODELS',
    'WeeklyReport',
    'WeeklyReportView',
    'AuthUser',
    'SignInRequest',
    'LoginTrackingResponse',
    'SubscriptionStatus',
    'SubscriptionResponse',
    'CheckoutRequest',
    'CheckoutResponse',
]
