"""
Built-in event processors.

- GoogleAnalyticsEventProcessor: Prepares Google Analytics events and keeps
  the client id in storage (registered as 'googleAnalytics')
"""

from .google_analytics import GoogleAnalyticsEventProcessor, GoogleAnalyticsOptions

__all__ = [
    "GoogleAnalyticsEventProcessor",
    "GoogleAnalyticsOptions",
]
