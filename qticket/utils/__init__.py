"""Shared helpers: configuration, logging, exceptions and clocks"""
