"""Chronicle: decoupled audit logging for domain entities.

Records CREATE/UPDATE/DELETE operations as field-level change sets and
hands them to pluggable storage writers without ever failing the
operation being audited.
"""

__version__ = "0.1.0"
