"""Custom exceptions for podshell"""


class PodshellError(Exception):
    """Base exception for all podshell errors"""
    pass


class ValidationError(PodshellError):
    """Input validation failed"""
    pass


class TransportError(PodshellError):
    """Transport session failed"""
    pass


class AuthError(TransportError):
    """Remote host rejected the supplied credentials"""
    pass


class NetworkError(TransportError):
    """Remote host unreachable or connection timed out"""
    pass


class DeployError(TransportError):
    """Agent upload failed"""
    pass


class SpawnError(TransportError):
    """Agent process could not be launched"""
    pass


class TransportClosedError(TransportError):
    """Stream closed while a read or write was in progress"""
    pass


class DecodeError(PodshellError):
    """Malformed frame on the wire; the stream is desynchronized"""
    pass


class BackendError(PodshellError):
    """Backend operation failed"""
    pass


class PayloadShapeError(PodshellError):
    """Request payload does not match the shape its command expects"""
    pass


class OrderingViolation(PodshellError):
    """Responses arrived in a different order than their requests were sent"""
    pass
