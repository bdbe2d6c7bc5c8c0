"""Service layer package: notification persistence and business-event notifiers."""
