import configparser
import os

RC_FILE_HELP = """\
Sample rcfile:
    [http]
    host = https://travis-ci.org
    [github]
    api host = https://api.github.com
    token = <oauth token used for commit statuses>
    [keys]
    dir = ~/.config/buildjobs/keys  # one <owner>_<name>.pem per repository
    [queues]
    default = builds.linux
    [queues.builds.rails]
    owner = rails
    [queues.builds.mac_osx]
    os = osx
"""

DEFAULT_HTTP_HOST = "https://travis-ci.org"
DEFAULT_GITHUB_API_HOST = "https://api.github.com"
DEFAULT_QUEUE = "builds.linux"
QUEUE_SECTION_PREFIX = "queues."
QUEUE_RULE_OPTIONS = {'slug', 'owner', 'language', 'os', 'sponsor'}


class ConfigError(Exception):
    pass


def _getConfig(cfgParser, section, option, defaultValue=None):
    if not cfgParser.has_section(section):
        return defaultValue
    if not cfgParser.has_option(section, option):
        return defaultValue
    return cfgParser.get(section, option)


def _getDictConfig(cfgParser, section):
    options = {}
    if not cfgParser.has_section(section):
        return options
    for option in cfgParser.options(section):
        options[option] = _getConfig(cfgParser, section, option, None)
    return options


def _getQueueRules(cfgParser):
    """
    Collect the [queues.<name>] sections in file order.

    Returns a list of (queueName, attributes) pairs.
    """
    rules = []
    for section in cfgParser.sections():
        if not section.startswith(QUEUE_SECTION_PREFIX):
            continue
        queueName = section[len(QUEUE_SECTION_PREFIX):]
        if not queueName:
            raise ConfigError(
                "RC file has a queue section without a queue name")
        attrs = _getDictConfig(cfgParser, section)
        if not attrs:
            raise ConfigError(
                "RC file queue section \"{}\" has no matching attributes".format(
                    section))
        rules.append((queueName, attrs))
    return rules


class Config(object):
    # pylint: disable=too-many-instance-attributes
    validConfig = {
        'http': {'host'},
        'github': {'api host', 'token'},
        'keys': {'dir'},
        'queues': {'default'},
    }

    def _validSectionConfig(self, section):
        if section.startswith(QUEUE_SECTION_PREFIX):
            return QUEUE_RULE_OPTIONS
        return self.validConfig.get(section)

    def _validateConfigParser(self, cfgParser):
        unknownSections = {
            section for section in cfgParser.sections()
            if self._validSectionConfig(section) is None}
        if unknownSections:
            raise ConfigError(
                "RC file has unknown configuration sections: {}".format(
                    ", ".join(sorted(unknownSections))))
        for section in cfgParser.sections():
            cfgValues = set(cfgParser.options(section))
            unknownOptions = cfgValues - self._validSectionConfig(section)
            if unknownOptions:
                raise ConfigError(
                    "RC file has unknown configuration options in "
                    "section \"{}\": {}".format(
                        section, ", ".join(sorted(unknownOptions))))

    def __init__(self, options):
        stateDir = options.stateDir
        self.options = options
        self._dbDir = os.path.expanduser(stateDir) + "/db/"
        self._logDir = os.path.expanduser(stateDir) + "/log/"

        rcFile = os.path.expanduser(options.rcFile)
        cfgParser = configparser.RawConfigParser()
        cfgParser.read(rcFile)
        self._validateConfigParser(cfgParser)

        self._httpHost = _getConfig(
            cfgParser, "http", "host", DEFAULT_HTTP_HOST).rstrip("/")
        self._githubApiHost = _getConfig(
            cfgParser, "github", "api host", DEFAULT_GITHUB_API_HOST).rstrip("/")
        self._githubToken = _getConfig(cfgParser, "github", "token")
        self._keysDir = _getConfig(cfgParser, "keys", "dir")
        self._defaultQueue = _getConfig(
            cfgParser, "queues", "default", DEFAULT_QUEUE)
        self._queueRules = _getQueueRules(cfgParser)

    @property
    def verbose(self):
        return self.options.verbose

    @staticmethod
    def checkDir(dirName):
        if not os.access(dirName, os.W_OK | os.X_OK | os.R_OK):
            os.makedirs(dirName)
        return dirName

    @property
    def dbDir(self):
        return self.checkDir(self._dbDir)

    @property
    def dbFile(self):
        return os.path.join(self.dbDir, "jobs.db")

    @property
    def logDir(self):
        return self.checkDir(self._logDir)

    @property
    def httpHost(self):
        return self._httpHost

    @property
    def githubApiHost(self):
        return self._githubApiHost

    @property
    def githubToken(self):
        return self._githubToken

    @property
    def keysDir(self):
        if self._keysDir is None:
            return None
        return os.path.expanduser(self._keysDir)

    @property
    def defaultQueue(self):
        return self._defaultQueue

    @property
    def queueRules(self):
        return list(self._queueRules)
