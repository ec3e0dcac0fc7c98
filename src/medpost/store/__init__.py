"""Relational store implementations."""

from medpost.store.sql import Base, SQLAlchemyStore

__all__ = ["Base", "SQLAlchemyStore"]
