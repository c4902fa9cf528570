"""Subscriptions module -- users, subscription records, and booking eligibility.

Provides the SQLAlchemy models, Pydantic schemas, typed query criteria,
SubscriptionRepository, and the overlap resolver that decides whether a
user may book a new subscription range.
"""
