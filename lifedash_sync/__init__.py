"""LifeDashboard Sync - hourly app-usage aggregation and upload agent."""

__version__ = "1.0.0"
