from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pve-iso-manager")
except PackageNotFoundError:
    __version__ = '0.22.0'
