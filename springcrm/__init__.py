"""springcrm - export CRM back end with an LLM business assistant."""
__version__ = "0.1.0"
