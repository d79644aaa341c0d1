"""buildwatch: polls build-job endpoints and notifies on failures and fixes."""

__version__ = "0.1.0"
