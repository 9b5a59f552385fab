"""
Core business logic for video uploads.

This module is framework-agnostic - it doesn't import FastAPI, boto3,
Snowflake or any infrastructure concerns. Orientation rules, storage key
derivation and the error taxonomy live here so they can be tested in
isolation.
"""
