"""Constituted ISSQN credits.

- **models**: Immutable credit record and query result types
- **validation**: Field rules, the ISSQN consistency rule and the record validator
- **service**: Cached queries, statistics and data-quality audits
"""
