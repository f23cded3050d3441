"""Now Playing watcher"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("now-playing-watcher")
except PackageNotFoundError:
    __version__ = "dev"
