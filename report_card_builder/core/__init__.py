"""Core domain: models, scoring policies and calculators"""
