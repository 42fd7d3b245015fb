import datetime
from typing import Any, Mapping

import dateutil.tz


def utcNow():
    return datetime.datetime.now(dateutil.tz.tzutc())


def dateTimeToJson(dtObj):
    if dtObj is None:
        return None
    return dtObj.isoformat()


def dateTimeFromJson(dtJson):
    if not dtJson:
        return None
    value = datetime.datetime.fromisoformat(dtJson)
    if value.tzinfo is None:
        value = value.replace(tzinfo=dateutil.tz.tzutc())
    return value


def deepStringifyKeys(value: Any) -> Any:
    """Recursively convert every mapping key to str, leaving values alone."""
    if isinstance(value, Mapping):
        return {str(k): deepStringifyKeys(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [deepStringifyKeys(v) for v in value]
    return value
