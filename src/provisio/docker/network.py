"""docker::Network resource."""

from __future__ import annotations

import logging
import time

from pydantic import BaseModel, Field

from ..context import Context, Phase
from ..resource import resource
from .api import DockerApi, is_placeholder, placeholder_id

logger = logging.getLogger(__name__)


class NetworkProps(BaseModel):
    name: str
    driver: str = "bridge"
    enable_ipv6: bool = False
    labels: dict[str, str] = Field(default_factory=dict)


class DockerNetwork(NetworkProps):
    id: str
    created_at: float


@resource("docker::Network", props=NetworkProps, output=DockerNetwork)
def Network(ctx: Context[DockerNetwork], id: str, props: NetworkProps) -> DockerNetwork | None:  # noqa: N802
    """Create and manage a Docker network."""
    api = DockerApi()

    if ctx.phase is Phase.DELETE:
        if not api.available:
            api.forget(ctx, "network")
            return None
        if ctx.output is not None and not is_placeholder(ctx.output.id):
            api.remove_network(ctx.output.id)
        ctx.confirm_destroyed()
        return None

    if not api.available:
        logger.warning("Docker daemon is not running; using a placeholder for network '%s'", id)
        return ctx.commit(DockerNetwork(**props.model_dump(), id=placeholder_id(props.name), created_at=time.time()))

    prior = ctx.output
    if prior is not None and not is_placeholder(prior.id):
        if not ctx.changed and api.network_exists(prior.id):
            logger.debug("Network '%s' is unchanged", props.name)
            return ctx.commit(prior)
        api.remove_network(prior.id)

    network_id = api.create_network(
        props.name,
        driver=props.driver,
        enable_ipv6=props.enable_ipv6,
        labels=props.labels,
    )
    return ctx.commit(DockerNetwork(**props.model_dump(), id=network_id, created_at=time.time()))
