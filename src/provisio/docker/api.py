"""Thin wrapper over the docker SDK used by the docker resource handlers."""

from __future__ import annotations

import logging
from typing import Any

import docker
import requests
from docker.errors import DockerException, NotFound

from ..context import Context

logger = logging.getLogger(__name__)

PLACEHOLDER_PREFIX = "mock-"


def placeholder_id(name: str) -> str:
    """Deterministic id used when the daemon cannot be reached."""
    return f"{PLACEHOLDER_PREFIX}{name}"


def is_placeholder(resource_id: str | None) -> bool:
    return resource_id is not None and resource_id.startswith(PLACEHOLDER_PREFIX)


class DockerApi:
    """Docker client with daemon reachability checks."""

    def __init__(self) -> None:
        try:
            self.client: Any = docker.from_env()
        except DockerException as exc:
            logger.debug("Unable to configure Docker client: %s", exc)
            self.client = None

    @property
    def available(self) -> bool:
        """The daemon answers a ping."""
        if self.client is None:
            return False
        try:
            return bool(self.client.ping())
        except (DockerException, requests.RequestException) as exc:
            logger.debug("Docker daemon is not reachable: %s", exc)
            return False

    def forget(self, ctx: Context[Any], kind: str) -> None:
        """Delete-phase fallback when the daemon is down.

        Placeholder records are dropped; real ones are kept so a later destroy
        can retry against the daemon.
        """
        output_id = getattr(ctx.output, "id", None)
        if output_id is None or is_placeholder(output_id):
            logger.debug("Forgetting placeholder %s '%s'", kind, ctx.id)
            ctx.confirm_destroyed()
            return
        raise RuntimeError(f"Docker daemon is not running; cannot delete {kind} '{output_id}'")

    # -- networks --

    def create_network(self, name: str, *, driver: str, enable_ipv6: bool, labels: dict[str, str]) -> str:
        logger.debug("Creating network %s (driver=%s)", name, driver)
        network = self.client.networks.create(name, driver=driver, enable_ipv6=enable_ipv6, labels=labels or None)
        return network.id

    def network_exists(self, network_id: str) -> bool:
        try:
            self.client.networks.get(network_id)
        except NotFound:
            return False
        return True

    def remove_network(self, network_id: str) -> None:
        try:
            self.client.networks.get(network_id).remove()
        except NotFound:
            logger.debug("Network %s is already gone", network_id)

    def connect_network(self, container_id: str, network: str, *, aliases: list[str] | None = None) -> None:
        logger.debug("Connecting container %s to network %s", container_id, network)
        self.client.networks.get(network).connect(container_id, aliases=aliases)

    # -- volumes --

    def create_volume(
        self,
        name: str,
        *,
        driver: str,
        driver_opts: dict[str, str],
        labels: dict[str, str],
    ) -> tuple[str, str | None]:
        """Create a volume and return its name and mountpoint."""
        logger.debug("Creating volume %s (driver=%s)", name, driver)
        volume = self.client.volumes.create(
            name=name,
            driver=driver,
            driver_opts=driver_opts or None,
            labels=labels or None,
        )
        return volume.name, volume.attrs.get("Mountpoint")

    def remove_volume(self, name: str) -> None:
        try:
            self.client.volumes.get(name).remove()
        except NotFound:
            logger.debug("Volume %s is already gone", name)

    # -- images --

    def pull_image(self, name: str, tag: str) -> str:
        logger.debug("Pulling image %s:%s", name, tag)
        image = self.client.images.pull(name, tag=tag)
        return image.id

    def image_exists(self, image_ref: str) -> bool:
        try:
            self.client.images.get(image_ref)
        except NotFound:
            return False
        return True

    def build_image(self, image_ref: str, context: str, **options: Any) -> str:
        logger.debug("Building image %s from %s", image_ref, context)
        image, _ = self.client.images.build(path=context, tag=image_ref, **options)
        return image.id

    # -- containers --

    def container_exists(self, name: str) -> bool:
        try:
            self.client.containers.get(name)
        except NotFound:
            return False
        return True

    def create_container(self, image: str, name: str, **options: Any) -> str:
        logger.debug("Creating container %s from %s", name, image)
        container = self.client.containers.create(image, name=name, **options)
        return container.id

    def start_container(self, container_id: str) -> None:
        self.client.containers.get(container_id).start()

    def stop_container(self, container_id: str) -> None:
        try:
            self.client.containers.get(container_id).stop()
        except NotFound:
            logger.debug("Container %s is already gone", container_id)

    def remove_container(self, container_id: str, *, force: bool = True) -> None:
        try:
            self.client.containers.get(container_id).remove(force=force)
        except NotFound:
            logger.debug("Container %s is already gone", container_id)
