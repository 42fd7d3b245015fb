#!/usr/bin/env python
import argparse
import sys

import simplejson as json

import buildjobs.logging

from .addons.github_status import StatusNotifier
from .argparse import addArgumentParserBaseFlags, verbosity
from .config import RC_FILE_HELP, Config
from .domain import Commit, JobState, Reference, Repository
from .plugins import Plugins
from .queues import QueueSelector
from .repository import SqliteJobRepository
from .secure import KeyRing
from .service_layer import EventBus, JobService

_DEBUG_LOG_FILE_NAME = "buildjobs-debug.log"
LOG = buildjobs.logging.getLogger(__name__)

DESC = """
buildjobs - build job queue and lifecycle tool

Lists jobs by queue, claims and advances jobs, and renders a job's
configuration with its secrets hidden or decrypted.

Configuration:
    The default configuration file location is `~/.config/buildjobsrc`, but
    can be overwritten using the --rc-file option.

{rcfile}
""".format(rcfile=RC_FILE_HELP)


def parseArgs(args=None):
    parser = argparse.ArgumentParser(
        description=DESC, formatter_class=argparse.RawDescriptionHelpFormatter)
    addArgumentParserBaseFlags(parser, _DEBUG_LOG_FILE_NAME)
    sub = parser.add_subparsers(dest="command", required=True)

    for name, helpText in (
            ("queued", "jobs created or queued"),
            ("queueable", "jobs waiting to be queued, oldest first"),
            ("running", "jobs queued or started")):
        cmd = sub.add_parser(name, help=helpText)
        cmd.add_argument("--queue", help="limit to one queue")
    sub.add_parser("unfinished", help="jobs not in a finished state")

    create = sub.add_parser("create", help="create a job")
    create.add_argument("--repo", required=True, metavar="SLUG")
    create.add_argument("--repo-id", type=int, required=True)
    create.add_argument("--sha", required=True)
    create.add_argument("--branch")
    create.add_argument("--pull-request", metavar="HEAD_SHA",
                        help="job belongs to a pull request with this head")
    create.add_argument("--build-id", type=int, required=True)
    create.add_argument("--owner", default="User:0", metavar="TYPE:ID")
    create.add_argument("--number")
    create.add_argument("--config", default="{}", help="job config as JSON")

    claim = sub.add_parser("claim", help="queue the oldest job of a queue")
    claim.add_argument("queue")
    start = sub.add_parser("start", help="mark a queued job started")
    start.add_argument("job_id", type=int)
    finish = sub.add_parser("finish", help="record a started job's result")
    finish.add_argument("job_id", type=int)
    finish.add_argument(
        "state", choices=[s.value for s in (
            JobState.PASSED, JobState.FAILED, JobState.ERRORED)])
    cancel = sub.add_parser("cancel", help="cancel an unfinished job")
    cancel.add_argument("job_id", type=int)

    showConfig = sub.add_parser("config", help="show a job's config")
    showConfig.add_argument("job_id", type=int)
    showConfig.add_argument("--decrypt", action="store_true",
                            help="decrypt secure env entries")
    return parser.parse_args(args)


def buildService(config):
    repo = SqliteJobRepository(config.dbFile)
    selector = QueueSelector.fromConfig(config, Plugins())
    bus = EventBus()
    service = JobService(repo, selector, bus, KeyRing(config.keysDir))
    if config.githubToken:
        StatusNotifier.fromConfig(config, builds=service.build_for).subscribeTo(bus)
    return service


def parseReference(value):
    refType, refId = value.split(":", 1)
    return Reference(refType, int(refId))


def printJobs(jobs, out):
    for job in jobs:
        print("{:>6} {:<20} {:<9} {}".format(
            job.id, job.queue, job.state.value, job.repository.slug), file=out)


def printJob(job, out):
    if job is None:
        print("(not changed)", file=out)
    else:
        printJobs([job], out)


def runCommand(options, service, out):
    if options.command in ("queued", "queueable", "running"):
        printJobs(getattr(service, options.command)(options.queue), out)
    elif options.command == "unfinished":
        printJobs(service.unfinished(), out)
    elif options.command == "create":
        commit = Commit(
            sha=options.sha,
            branch=options.branch,
            head_commit=options.pull_request,
            pull_request=bool(options.pull_request))
        job = service.create_job(
            Repository(options.repo_id, options.repo),
            commit,
            Reference("Build", options.build_id),
            parseReference(options.owner),
            config=json.loads(options.config),
            number=options.number)
        printJob(job, out)
    elif options.command == "claim":
        printJob(service.claim(options.queue), out)
    elif options.command == "start":
        printJob(service.start(options.job_id), out)
    elif options.command == "finish":
        printJob(service.finish(options.job_id, JobState(options.state)), out)
    elif options.command == "cancel":
        printJob(service.cancel(options.job_id), out)
    elif options.command == "config":
        job = service.get(options.job_id)
        if options.decrypt:
            rendered = service.decrypted_config(job)
        else:
            rendered = service.obfuscated_config(job)
        print(json.dumps(rendered, indent=2, sort_keys=True), file=out)


def main(args=None):
    options = parseArgs(args)
    config = Config(options)
    buildjobs.logging.setup(
        config.logDir,
        _DEBUG_LOG_FILE_NAME,
        debug=options.debug,
        verbosity=verbosity(options))
    LOG.debug("starting with args %s", options)
    service = buildService(config)
    try:
        runCommand(options, service, sys.stdout)
    except ValueError as error:
        print("buildjobs: {}".format(error), file=sys.stderr)
        return 1
    finally:
        service.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
