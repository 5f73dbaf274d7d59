"""Session hosting and event delivery."""

from vert_watch.pipeline.publisher import EventPublisher
from vert_watch.pipeline.session import JumpSession

__all__ = ["EventPublisher", "JumpSession"]
