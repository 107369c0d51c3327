"""
HotUKDeals Deal Filter & Notification System

Watches HotUKDeals search results for deals matching per-channel search
criteria, explains why each deal matched or was rejected, deduplicates
repeat sightings per channel, and holds deliveries during quiet hours.
"""

__version__ = "0.1.0"
__author__ = "HotUKDeals Deal Filter Team"
