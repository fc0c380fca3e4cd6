"""Docker engine access.

- DockerRuntime: containers, volumes, images and exec sessions
- streams: copying exec output to files and feeding exec input
"""
from .runtime import DockerRuntime
