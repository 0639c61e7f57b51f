"""Core modules for springcrm."""
