"""
Custom exceptions for PVE ISO Manager
"""


class IsoManagerException(Exception):
    """Base exception for the ISO manager"""
    pass


class InvalidInputException(IsoManagerException):
    """Exception raised when operator supplied fields are empty or malformed"""
    pass


class NotFoundException(IsoManagerException):
    """Exception raised when a catalog path does not resolve"""
    pass


class MountException(IsoManagerException):
    """Exception raised during mount operations"""
    pass


class UnmountException(IsoManagerException):
    """Exception raised when both graceful and lazy unmount failed"""
    pass


class ConfigurationException(IsoManagerException):
    """Exception raised for configuration or catalog file errors"""
    pass


class ToolNotFoundException(IsoManagerException):
    """Exception raised when a required host tool is missing"""
    pass


class LockTimeoutException(IsoManagerException):
    """Exception raised when the operation lock cannot be acquired"""
    pass
