"""
Student consent gateway.

Backend for an Ethereum-based student data platform: consent checks
against the EduConsent contract, consent history from event logs, and
consent-gated access to off-chain student records.
"""

__version__ = "0.1.0"
