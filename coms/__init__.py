"""
COMS package
============

Community Organization Management System: an offline, in-memory manager for
a charity's donors, projects, beneficiaries, staff, events and donations.

- The CLI entry point is in `coms/cli.py`.
- The collection view engine (filters, search, sorting, pagination,
  aggregates) is in `coms/engine.py`.
- Entity repositories are in `coms/repository.py`.
- Dataset loading is in `coms/loader.py`.
"""

__version__ = '0.1.0'
