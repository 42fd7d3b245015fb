import argparse
import unittest
from unittest.mock import patch

from buildjobs.argparse import (
    DEFAULT_STATE_DIR,
    addArgumentParserBaseFlags,
    verbosity,
)


def parser():
    ret = argparse.ArgumentParser()
    addArgumentParserBaseFlags(ret, "test-log")
    return ret


class TestBaseFlags(unittest.TestCase):
    def test_defaults(self):
        with patch.dict("os.environ", clear=True):
            args = parser().parse_args([])
        self.assertFalse(args.debug)
        self.assertEqual(DEFAULT_STATE_DIR, args.stateDir)
        self.assertEqual(0, verbosity(args))

    def test_debug_flag(self):
        args = parser().parse_args(["--debug"])
        self.assertTrue(args.debug)

    def test_verbosity_counts_flags(self):
        args = parser().parse_args(["-v", "-v"])
        self.assertEqual(2, verbosity(args))

    def test_state_dir_from_environment(self):
        with patch.dict("os.environ", {"BUILDJOBS_STATE_DIR": "/tmp/jobs"}):
            args = parser().parse_args([])
        self.assertEqual("/tmp/jobs", args.stateDir)

    def test_state_dir_flag(self):
        args = parser().parse_args(["-d", "/srv/jobs", "--rc-file", "/dev/null"])
        self.assertEqual("/srv/jobs", args.stateDir)
        self.assertEqual("/dev/null", args.rcFile)
