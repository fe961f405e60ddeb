"""docker::Volume resource."""

from __future__ import annotations

import logging
import time

from pydantic import BaseModel, Field, field_validator

from ..context import Context, Phase
from ..resource import resource
from .api import DockerApi, is_placeholder, placeholder_id

logger = logging.getLogger(__name__)


class VolumeLabel(BaseModel):
    name: str
    value: str


class VolumeProps(BaseModel):
    name: str
    driver: str = "local"
    driver_opts: dict[str, str] = Field(default_factory=dict)
    labels: dict[str, str] = Field(default_factory=dict)

    @field_validator("labels", mode="before")
    @classmethod
    def _labels_from_list(cls, value):
        # labels may be given as [{name, value}, ...]
        if isinstance(value, list):
            return {label.name: label.value for label in map(VolumeLabel.model_validate, value)}
        return value


class DockerVolume(VolumeProps):
    id: str
    mountpoint: str | None = None
    created_at: float


@resource("docker::Volume", props=VolumeProps, output=DockerVolume)
def Volume(ctx: Context[DockerVolume], id: str, props: VolumeProps) -> DockerVolume | None:  # noqa: N802
    """Create and manage a Docker volume."""
    api = DockerApi()

    if ctx.phase is Phase.DELETE:
        if not api.available:
            api.forget(ctx, "volume")
            return None
        if ctx.output is not None and not is_placeholder(ctx.output.id):
            api.remove_volume(ctx.output.name)
        ctx.confirm_destroyed()
        return None

    if not api.available:
        logger.warning("Docker daemon is not running; using a placeholder for volume '%s'", id)
        return ctx.commit(DockerVolume(**props.model_dump(), id=placeholder_id(props.name), created_at=time.time()))

    prior = ctx.output
    if prior is not None and not is_placeholder(prior.id):
        if not ctx.changed:
            logger.debug("Volume '%s' is unchanged", props.name)
            return ctx.commit(prior)
        if prior.name != props.name:
            api.remove_volume(prior.name)

    # creating an existing local volume with the same name returns it unchanged
    name, mountpoint = api.create_volume(
        props.name,
        driver=props.driver,
        driver_opts=props.driver_opts,
        labels=props.labels,
    )
    return ctx.commit(DockerVolume(**props.model_dump(), id=name, mountpoint=mountpoint, created_at=time.time()))
