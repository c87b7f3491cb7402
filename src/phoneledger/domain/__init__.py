"""Domain layer for phoneledger application.

Services are imported from their modules directly (e.g.
``phoneledger.domain.reversal``) so that the database layer can import the
entity and unit-of-work modules without pulling the services in.
"""
