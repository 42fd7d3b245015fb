from contextlib import contextmanager
import io
import sys

from buildjobs.domain import Commit, Job, JobState, Reference, Repository

REPOSITORY = Repository(1, "svenfuchs/minimal")
COMMIT = Commit(sha="62aae5f70ceee39123ef", branch="master")
PR_COMMIT = Commit(
    sha="merge0ceee39123ef",
    branch="master",
    head_commit="head5f70ceee39123ef",
    pull_request=True)
BUILD = Reference("Build", 7)
OWNER = Reference("User", 3)


def makeJob(config=None, commit=COMMIT, state=JobState.CREATED, **kwargs):
    kwargs.setdefault("repository", REPOSITORY)
    kwargs.setdefault("source", BUILD)
    kwargs.setdefault("owner", OWNER)
    kwargs.setdefault("queue", "builds.linux")
    return Job(commit=commit, config=config, state=state, **kwargs)


@contextmanager
def capturedOutput():
    ''' Used to capture stdout or stderr.
    eg.
    with capturedOutput() as (out, err):
        print("foo")

    self.assertEqual(out.getvalue(), "foo")
    '''
    newOut, newErr = io.StringIO(), io.StringIO()
    oldOut, oldErr = sys.stdout, sys.stderr
    try:
        sys.stdout, sys.stderr = newOut, newErr
        yield sys.stdout, sys.stderr
    finally:
        sys.stdout, sys.stderr = oldOut, oldErr
