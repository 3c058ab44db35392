# core/pod_watch.py
import logging
from typing import Any, Dict, Iterator, Mapping, Optional, Protocol
from kubernetes import watch
from kubernetes.client import CoreV1Api
from kubernetes.client.rest import ApiException
from pydantic import ValidationError
from model.pod import DecodedEvent, PodEvent, PodObject, Unrecognized
from util.enums import WatchEventType

logger = logging.getLogger(__name__)

HTTP_GONE = 410


def _raw_object(event: Mapping[str, Any]) -> Any:
    raw = event.get("raw_object")
    if raw is not None:
        return raw
    obj = event.get("object")
    # Deserialized V1Pod; to_dict() gives snake_case keys, which the model also accepts
    return obj.to_dict() if hasattr(obj, "to_dict") else obj


def decode_event(event: Any) -> DecodedEvent:
    """
    Turn one watch event into PodEvent or Unrecognized. Never raises.
    ERROR events carry a Status object; its code is kept so callers can spot 410 Gone.
    """
    if not isinstance(event, Mapping):
        return Unrecognized(reason=f"event is {type(event).__name__}, not a mapping")

    etype = event.get("type")
    raw = _raw_object(event)

    if etype == WatchEventType.ERROR.value:
        status: Dict[str, Any] = raw if isinstance(raw, dict) else {}
        code = status.get("code")
        return Unrecognized(
            type=etype,
            reason=str(status.get("reason") or status.get("message") or "watch error"),
            code=code if isinstance(code, int) else None,
        )

    try:
        return PodEvent(type=etype, pod=PodObject.model_validate(raw))
    except ValidationError as e:
        return Unrecognized(
            type=str(etype) if etype is not None else None,
            reason=f"object is not a Pod ({e.error_count()} validation errors, got {type(raw).__name__})",
        )


class WatchSource(Protocol):
    def stream(self) -> Iterator[Any]: ...

    def stop(self) -> None: ...


class PodWatchSource:
    """
    Pod watch across all namespaces.

    stream() is one subscription: it ends normally when the server-side timeout
    expires, or when the resume point is too old (410 Gone), after which the next
    call lists from scratch. Anything else raises to the caller.
    """

    def __init__(self, api: CoreV1Api, timeout_seconds: int = 300) -> None:
        self._api = api
        self._timeout = timeout_seconds
        self._watch: Optional[watch.Watch] = None
        self._resource_version: Optional[str] = None

    @property
    def resource_version(self) -> Optional[str]:
        return self._resource_version

    def stream(self) -> Iterator[Any]:
        self._watch = watch.Watch()
        kwargs: Dict[str, Any] = {"timeout_seconds": self._timeout}
        if self._resource_version:
            kwargs["resource_version"] = self._resource_version
        logger.info("watch.subscribe resource_version=%s", self._resource_version or "-")

        try:
            for event in self._watch.stream(self._api.list_pod_for_all_namespaces, **kwargs):
                rv = self._event_resource_version(event)
                if rv:
                    self._resource_version = rv
                yield event
        except ApiException as e:
            if e.status != HTTP_GONE:
                raise
            logger.warning("watch.expired resource_version=%s", self._resource_version)
            self._resource_version = None
            return

        if self._watch.resource_version:
            self._resource_version = self._watch.resource_version

    def stop(self) -> None:
        if self._watch is not None:
            self._watch.stop()

    @staticmethod
    def _event_resource_version(event: Any) -> Optional[str]:
        if not isinstance(event, Mapping):
            return None
        raw = event.get("raw_object")
        if isinstance(raw, dict):
            return (raw.get("metadata") or {}).get("resourceVersion")
        return None
