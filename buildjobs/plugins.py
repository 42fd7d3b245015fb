"""
This module implements the plugin contract.

Plugin modules need to be registered using the buildjobs.queues entrypoint.
Modules that are registered as such can implement any of the functions:

    def priority():
        return {"queueFor": 10}

    def queueFor(job):
        # Route jobs of sponsored accounts to a dedicated queue.
        return "builds.sponsored"

All of these functions are optional. If the plugin has no opinion about the
job it should raise NotImplementedError so that the next plugin at a possibly
lower priority will get called instead.
"""
from importlib import metadata
import logging
from operator import attrgetter
from typing import List, Optional

logger = logging.getLogger(__name__)
PLUGIN_GROUP = "buildjobs.queues"
PRIO_LOWEST = 1 << 31
PRIO_HIGHEST = 0


def get_plugins(group: str) -> List[metadata.EntryPoint]:
    eps = metadata.entry_points()
    if not hasattr(eps, 'get'):
        return list(eps.select(group=group))
    return list(eps.get(group, []))


class Plugins(object):
    def __init__(self, plugins=None):
        if plugins is None:
            plugins = {plug.load() for plug in get_plugins(PLUGIN_GROUP)}
        self.plugins = list(sorted(plugins, key=attrgetter("__name__")))
        logger.debug("all plugins: %r", [p.__name__ for p in self.plugins])
        self._prio = {}
        for plugin in self.plugins:
            if hasattr(plugin, "priority"):
                self._prio[plugin.__name__] = plugin.priority()

    def _pluginCalls(self, func, *args, **kwargs):
        prio = {}
        for plugin in self.plugins:
            if hasattr(plugin, func):
                pluginPrioMap = self._prio.get(plugin.__name__, {})
                pval = pluginPrioMap.get(func, pluginPrioMap.get("", PRIO_LOWEST))
                prio.setdefault(pval, []).append(plugin)

        for pval, plugins in sorted(prio.items()):
            for plugin in plugins:
                name = plugin.__name__
                try:
                    result = getattr(plugin, func)(*args, **kwargs)
                    logger.debug("%r: yield plugin %s => %r", pval, name, result)
                    yield result
                except NotImplementedError:
                    logger.debug("%r: plugin %s NotImplementedError", pval, name)
                    continue

    def queueFor(self, job) -> Optional[str]:
        for queue in self._pluginCalls("queueFor", job):
            if queue:
                return queue
        return None
