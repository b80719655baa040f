"""
Services Module

This module contains the services behind the ticketing workflow:
conversation state, transcript classification, team routing, ticket
persistence, queue reconciliation, speech services and dashboard
broadcasting. Import from the submodules directly.
"""
