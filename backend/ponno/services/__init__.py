"""
Service layer package.

Each subpackage owns one aggregate: its repository (entity store access) and,
where business rules exist, its service.
"""
