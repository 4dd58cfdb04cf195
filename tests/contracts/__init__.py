"""
Contract tests for ShareRepository implementations.
"""
