"""CRM hub: contacts, activity logs and automation webhooks."""

__version__ = "0.1.0"
