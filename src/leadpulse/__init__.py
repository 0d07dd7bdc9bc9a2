"""
LeadPulse: lead form intake, enrichment and analytics API
"""
__version__ = "1.0.0"
