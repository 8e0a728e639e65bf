"""The Logpush job resource."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Protocol

from .base import ApiError, ResourceData, ResourceError

logger = logging.getLogger(__name__)

_INTEGER = re.compile(r"[+-]?[0-9]+")


@dataclass
class LogpushJob:
    """A Logpush job as the API knows it."""

    id: int = 0
    enabled: bool = False
    name: str = ""
    logpull_options: str = ""
    destination_conf: str = ""
    ownership_challenge: str = ""


class _LogpushApi(Protocol):
    def logpush_job(self, zone_id: str, job_id: int) -> LogpushJob: ...

    def create_logpush_job(self, zone_id: str, job: LogpushJob) -> LogpushJob: ...

    def update_logpush_job(self, zone_id: str, job_id: int, job: LogpushJob) -> None: ...

    def delete_logpush_job(self, zone_id: str, job_id: int) -> None: ...


def _job_id(text: str) -> int:
    """Parse a resource id; an unparsable id counts as zero."""
    if _INTEGER.fullmatch(text):
        return int(text)
    logger.debug("Could not extract Logpush job id from %r", text)
    return 0


def _zone_id(data: ResourceData) -> str:
    return data.get("zone_id") or ""


def job_from_resource(data: ResourceData) -> LogpushJob:
    """Build the API job from the resource's id and attributes."""
    return LogpushJob(
        id=_job_id(data.id),
        enabled=bool(data.get("enabled")),
        name=data.get("name") or "",
        logpull_options=data.get("logpull_options") or "",
        destination_conf=data.get("destination_conf") or "",
        ownership_challenge=data.get("ownership_challenge") or "",
    )


def read_logpush_job(data: ResourceData, client: _LogpushApi) -> None:
    """Refresh data from the API; clear the id when the job is empty."""
    job_id = _job_id(data.id)
    try:
        job = client.logpush_job(_zone_id(data), job_id)
    except ApiError as err:
        if "404" in str(err):
            logger.info("Could not find LogpushJob with id: %s", job_id)
            return
        raise ResourceError(f"error finding logpush job {job_id}: {err}") from err

    if job.id == 0:
        data.id = ""
        return

    data.set("name", job.name)
    data.set("enabled", job.enabled)
    data.set("logpull_options", job.logpull_options)
    data.set("destination_conf", job.destination_conf)
    data.set("ownership_challenge", data.get("ownership_challenge"))


def create_logpush_job(data: ResourceData, client: _LogpushApi) -> None:
    """Create the job described by data and read it back."""
    job = job_from_resource(data)
    logger.debug("Creating Cloudflare Logpush Job from struct: %r", job)

    try:
        created = client.create_logpush_job(_zone_id(data), job)
    except ApiError as err:
        raise ResourceError("error creating logpush job") from err

    if created.id == 0:
        raise ResourceError("failed to find ID in Create response; resource was empty")

    data.id = str(created.id)
    logger.info("Created Cloudflare Logpush Job ID: %s", data.id)
    read_logpush_job(data, client)


def update_logpush_job(data: ResourceData, client: _LogpushApi) -> None:
    """Replace the job with the configuration in data and read it back."""
    job = job_from_resource(data)
    logger.info("Updating Cloudflare Logpush Job from struct: %r", job)

    try:
        client.update_logpush_job(_zone_id(data), job.id, job)
    except ApiError as err:
        raise ResourceError(f"error updating logpush job: {job.id}") from err

    read_logpush_job(data, client)


def delete_logpush_job(data: ResourceData, client: _LogpushApi) -> None:
    """Delete the job and read it once more."""
    job = job_from_resource(data)
    zone_id = _zone_id(data)
    logger.debug("Deleting Cloudflare Logpush job from zone %s with id: %s", zone_id, job.id)

    try:
        client.delete_logpush_job(zone_id, job.id)
    except ApiError as err:
        raise ResourceError(f"error deleting logpush job: {job.id}") from err

    read_logpush_job(data, client)