"""Notification email connectors."""

from apihub_applications.infrastructure.email.email_connector import HttpEmailConnector

__all__ = ["HttpEmailConnector"]
