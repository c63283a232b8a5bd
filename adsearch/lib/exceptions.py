class ADSearchError(Exception):
	"""Base class for every error raised by adsearch."""

class BackendUnavailableError(ADSearchError):
	"""Neither the managed client nor the raw search client can be used."""

class HostResolutionError(ADSearchError):
	def __init__(self, address, message=None):
		self.address = address
		super().__init__(message or f"Failed to resolve {address} to a host name")

class InvalidCriteriaError(ADSearchError):
	pass
