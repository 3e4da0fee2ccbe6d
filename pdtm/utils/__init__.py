"""Utilities - URL/domain normalization and input validation"""
