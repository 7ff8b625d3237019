"""Lifecycle control of the managed nginx container."""

from nginxswitch.control.controller import NginxController

__all__ = ["NginxController"]
