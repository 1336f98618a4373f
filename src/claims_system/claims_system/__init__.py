"""Claims System package.

This package is organized by feature modules (rbac, submissions, rates, audit,
users, ...) with a thin Flask controller layer and service/repository layers.
"""
