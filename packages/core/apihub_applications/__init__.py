"""API Hub applications core: applications, access requests, teams and scope reconciliation."""

__version__ = "0.1.0"
