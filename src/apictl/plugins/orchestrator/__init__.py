"""Built-in orchestrator plugin commands (``orchestrator buckets upload|download``)."""

from apictl.plugins.orchestrator.plugin import DownloadCommand, UploadCommand

__all__ = ["DownloadCommand", "UploadCommand"]
