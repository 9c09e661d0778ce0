"""oppfeeds: RSS and iCalendar feeds for the community opportunities dashboard."""

__version__ = "0.1.0"
