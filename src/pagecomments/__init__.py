"""Embeddable, moderated page comments with email notifications."""

__version__ = "0.1.0"
