"""docker::RemoteImage and docker::Image resources.

Neither resource removes its image on delete; other containers may still use it.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

from pydantic import BaseModel, Field

from ..context import Context, Phase
from ..resource import resource
from .api import DockerApi, placeholder_id

logger = logging.getLogger(__name__)


class RemoteImageProps(BaseModel):
    name: str
    tag: str = "latest"
    always_pull: bool = False


class DockerRemoteImage(RemoteImageProps):
    id: str
    image_ref: str
    created_at: float


@resource("docker::RemoteImage", props=RemoteImageProps, output=DockerRemoteImage)
def RemoteImage(  # noqa: N802
    ctx: Context[DockerRemoteImage], id: str, props: RemoteImageProps
) -> DockerRemoteImage | None:
    """Pull an image from a registry."""
    if ctx.phase is Phase.DELETE:
        ctx.confirm_destroyed()
        return None

    api = DockerApi()
    image_ref = f"{props.name}:{props.tag}"
    if not api.available:
        logger.warning("Docker daemon is not running; using a placeholder for image '%s'", image_ref)
        return ctx.commit(
            DockerRemoteImage(
                **props.model_dump(),
                id=placeholder_id(image_ref),
                image_ref=image_ref,
                created_at=time.time(),
            )
        )

    prior = ctx.output
    if prior is not None and not ctx.changed and not props.always_pull and api.image_exists(image_ref):
        logger.debug("Image '%s' is already present", image_ref)
        return ctx.commit(prior)

    image_id = api.pull_image(props.name, props.tag)
    return ctx.commit(
        DockerRemoteImage(**props.model_dump(), id=image_id, image_ref=image_ref, created_at=time.time())
    )


class BuildOptions(BaseModel):
    context: str
    dockerfile: str = "Dockerfile"
    platform: str | None = None
    build_args: dict[str, str] = Field(default_factory=dict)
    target: str | None = None
    cache_from: list[str] = Field(default_factory=list)


class ImageProps(BaseModel):
    name: str
    tag: str = "latest"
    build: BuildOptions


class DockerImage(ImageProps):
    id: str
    image_ref: str
    built_at: float


@resource("docker::Image", props=ImageProps, output=DockerImage)
def Image(ctx: Context[DockerImage], id: str, props: ImageProps) -> DockerImage | None:  # noqa: N802
    """Build an image from a local build context."""
    if ctx.phase is Phase.DELETE:
        ctx.confirm_destroyed()
        return None

    api = DockerApi()
    image_ref = f"{props.name}:{props.tag}"
    if not api.available:
        logger.warning("Docker daemon is not running; using a placeholder for image '%s'", image_ref)
        return ctx.commit(
            DockerImage(**props.model_dump(), id=placeholder_id(image_ref), image_ref=image_ref, built_at=time.time())
        )

    context = Path(props.build.context)
    if not context.is_dir():
        raise FileNotFoundError(f"Build context path does not exist: {context}")
    dockerfile = context / props.build.dockerfile
    if not dockerfile.is_file():
        raise FileNotFoundError(f"Dockerfile does not exist: {dockerfile}")

    logger.info("Building Docker image %s", image_ref)
    image_id = api.build_image(
        image_ref,
        str(context),
        dockerfile=props.build.dockerfile,
        buildargs=props.build.build_args or None,
        target=props.build.target,
        platform=props.build.platform,
        cache_from=props.build.cache_from or None,
    )
    return ctx.commit(DockerImage(**props.model_dump(), id=image_id, image_ref=image_ref, built_at=time.time()))
