"""docker::Container resource.

Updates are applied by removing and recreating the container.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from ..context import Context, Phase
from ..resource import resource
from .api import DockerApi, is_placeholder, placeholder_id

logger = logging.getLogger(__name__)

_NAME_UNSAFE = re.compile(r"[^a-zA-Z0-9_.-]")


class PortMapping(BaseModel):
    external: int | str
    internal: int | str
    protocol: Literal["tcp", "udp"] = "tcp"


class VolumeMapping(BaseModel):
    host_path: str
    container_path: str
    read_only: bool = False


class NetworkMapping(BaseModel):
    name: str
    aliases: list[str] = Field(default_factory=list)


class ContainerProps(BaseModel):
    image: str
    name: str | None = None
    command: list[str] | None = None
    environment: dict[str, str] = Field(default_factory=dict)
    ports: list[PortMapping] = Field(default_factory=list)
    volumes: list[VolumeMapping] = Field(default_factory=list)
    restart: Literal["no", "always", "on-failure", "unless-stopped"] = "no"
    networks: list[NetworkMapping] = Field(default_factory=list)
    remove_on_exit: bool = False
    start: bool = False

    @field_validator("image", mode="before")
    @classmethod
    def _image_ref(cls, value: Any) -> Any:
        # accept an image resource output in place of a reference string
        return getattr(value, "image_ref", value)

    @field_validator("networks", mode="before")
    @classmethod
    def _network_names(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [{"name": item} if isinstance(item, str) else item for item in value]
        return value


class DockerContainer(ContainerProps):
    id: str
    name: str
    state: Literal["created", "running", "paused", "stopped", "exited"] = "created"
    created_at: float


def container_name(resource_id: str, props: ContainerProps) -> str:
    """Explicit name, or one derived from the resource id."""
    return props.name or f"provisio-{_NAME_UNSAFE.sub('-', resource_id)}"


def _host_binding(external: int | str) -> int | tuple[str, int]:
    """Map "8080" or "127.0.0.1:8080" to the docker SDK port binding form."""
    if isinstance(external, int):
        return external
    host, sep, port = external.rpartition(":")
    if sep:
        return (host, int(port))
    return int(port)


def _create_options(props: ContainerProps) -> dict[str, Any]:
    options: dict[str, Any] = {
        "command": props.command,
        "environment": props.environment or None,
        "ports": {f"{p.internal}/{p.protocol}": _host_binding(p.external) for p in props.ports} or None,
        "volumes": {
            v.host_path: {"bind": v.container_path, "mode": "ro" if v.read_only else "rw"} for v in props.volumes
        }
        or None,
        "auto_remove": props.remove_on_exit,
    }
    if props.restart != "no":
        options["restart_policy"] = {"Name": props.restart}
    return options


@resource("docker::Container", props=ContainerProps, output=DockerContainer)
def Container(  # noqa: N802
    ctx: Context[DockerContainer], id: str, props: ContainerProps
) -> DockerContainer | None:
    """Create and manage a Docker container."""
    api = DockerApi()
    name = container_name(id, props)

    if ctx.phase is Phase.DELETE:
        if not api.available:
            api.forget(ctx, "container")
            return None
        if ctx.output is not None and not is_placeholder(ctx.output.id):
            api.stop_container(ctx.output.id)
            api.remove_container(ctx.output.id, force=True)
        ctx.confirm_destroyed()
        return None

    fields = props.model_dump(exclude={"name"})
    if not api.available:
        logger.warning("Docker daemon is not running; using a placeholder for container '%s'", name)
        return ctx.commit(
            DockerContainer(
                **fields,
                name=name,
                id=placeholder_id(name),
                state="running" if props.start else "created",
                created_at=time.time(),
            )
        )

    prior = ctx.output
    if prior is not None and not is_placeholder(prior.id):
        if not ctx.changed and api.container_exists(prior.id):
            logger.debug("Container '%s' is unchanged", name)
            return ctx.commit(prior)
        api.remove_container(prior.id, force=True)
    if api.container_exists(name):
        logger.debug("Removing existing container '%s' before recreating", name)
        api.remove_container(name, force=True)

    container_id = api.create_container(props.image, name, **_create_options(props))
    for network in props.networks:
        api.connect_network(container_id, network.name, aliases=network.aliases or None)

    state = "created"
    if props.start:
        api.start_container(container_id)
        state = "running"

    return ctx.commit(DockerContainer(**fields, name=name, id=container_id, state=state, created_at=time.time()))
