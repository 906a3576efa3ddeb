"""Repository-level pytest configuration."""

import logging

import structlog


def pytest_configure(config):
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.INFO))
