"""FastAPI dependency resolving the app's NotificationPort."""

from starlette.requests import HTTPConnection

from crm.realtime.port import NotificationPort, NullPort

_null_port = NullPort()


def get_notifier(conn: HTTPConnection) -> NotificationPort:
    return getattr(conn.app.state, "notifier", _null_port)
