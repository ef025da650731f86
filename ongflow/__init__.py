"""
OngFlow - Project coordination across local and delegated task stores

Projects created by an organization (ONG) carry two task populations:
local tasks kept in the relational store, and coverage requests delegated
to an external workflow engine as a single case per project. OngFlow keeps
the project lifecycle consistent across both.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
