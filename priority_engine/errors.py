"""
Exceptions raised by the priority engine
"""


class PriorityEngineError(Exception):
    """Base class for priority engine errors"""


class ValidationError(PriorityEngineError):
    """Raised when a configuration payload cannot be normalized at all"""

    def __init__(self, message: str = 'Failed to import configuration. Please provide a valid export.'):
        super().__init__(message)
        self.message = message


class PresetNotFoundError(PriorityEngineError):
    """Raised when a preset slug does not resolve to a known preset"""

    def __init__(self, slug: str):
        super().__init__(f'Unknown priority preset: {slug}')
        self.slug = slug


class SaveInProgressError(PriorityEngineError):
    """Raised when a save is requested while another save is still pending"""


class ConfigStoreError(PriorityEngineError):
    """Raised when the config store fails to load or persist a config"""
