"""Tests for logging setup."""

import logging

from rich.logging import RichHandler

from apiclientgen.log import configure_logging, get_logger


def describe_get_logger():
    def shortens_module_names(expect):
        expect(get_logger("apiclientgen.generator.apiclient").name) == "apiclientgen.apiclient"

    def returns_the_root_logger_by_default(expect):
        expect(get_logger().name) == "apiclientgen"


def describe_configure_logging():
    def installs_a_single_rich_handler(expect):
        configure_logging()
        logger = configure_logging()
        expect(len(logger.handlers)) == 1
        expect(isinstance(logger.handlers[0], RichHandler)) == True
        expect(logger.propagate) == False

    def sets_the_level_from_verbosity(expect):
        expect(configure_logging(verbose=True).level) == logging.DEBUG
        expect(configure_logging().level) == logging.INFO
