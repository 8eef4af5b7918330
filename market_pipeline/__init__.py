"""Federal market research pipeline: buyer discovery, hit list and combined reports."""

__version__ = "1.0.0"
