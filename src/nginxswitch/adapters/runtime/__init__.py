from nginxswitch.adapters.runtime.docker import DockerContainer, DockerRuntime

__all__ = ["DockerContainer", "DockerRuntime"]
