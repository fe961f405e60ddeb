"""Docker resources: networks, volumes, images and containers."""

from .api import DockerApi as DockerApi
from .container import Container as Container
from .container import ContainerProps as ContainerProps
from .container import DockerContainer as DockerContainer
from .image import DockerImage as DockerImage
from .image import DockerRemoteImage as DockerRemoteImage
from .image import Image as Image
from .image import ImageProps as ImageProps
from .image import RemoteImage as RemoteImage
from .image import RemoteImageProps as RemoteImageProps
from .network import DockerNetwork as DockerNetwork
from .network import Network as Network
from .network import NetworkProps as NetworkProps
from .volume import DockerVolume as DockerVolume
from .volume import Volume as Volume
from .volume import VolumeProps as VolumeProps
