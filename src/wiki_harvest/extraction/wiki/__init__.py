# ABOUTME: Wiki content clients
# ABOUTME: HTTP access to the HoyoLab wiki entry page API

from .hoyolab import HoyoLabContentClient

__all__ = ["HoyoLabContentClient"]
