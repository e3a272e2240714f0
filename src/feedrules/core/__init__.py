"""Core domain package for feedrules.

Core contains the registry, built-in definitions, rule evaluation and
trigger dispatch without any storage or delivery-specific code, keeping the
automation logic portable.
"""
