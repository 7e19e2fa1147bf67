"""
Identity and authorization package.

Holds the per-request identity record and the ownership authorizer used by
every order operation.
"""
