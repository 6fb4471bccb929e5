"""Application services for release-domains.

Services implement the release workflow, coordinating between the core
types (core/) and the infrastructure adapters (platform/).
"""
