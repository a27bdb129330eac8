"""Redis-backed API response cache.

Responses of GET requests on configured routes are stored under::

    api-cache:<user id or "anon">:<path>[?<sorted, url encoded query>]

Every stored key is also added to reverse index sets so it can be found
again on invalidation::

    api-cache-ref:resource:<name>       one per resource the route declares
    api-cache-ref:user:<user id>        the requesting user
    api-cache-ref:entity:<model>:<id>   one per entity binding of the route
    api-cache-ref:path:<path>           the concrete request path

Entries have no TTL, they live until invalidated. The routes are passed in
as an immutable :class:`CacheConfig` when the cache is created.
"""
import json
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Pattern, Sequence, Set, Tuple
from urllib.parse import urlencode

from redis import Redis

from vpdb.utils.logger import logger

CACHE_PREFIX = "api-cache:"
REF_PREFIX = "api-cache-ref:"

# Headers that describe a single response rather than the resource
VOLATILE_HEADERS = {
    "x-cache-api",
    "x-token-refresh",
    "x-user-dirty",
    "x-user-id",
    "x-request-id",
    "x-response-time",
    "content-length",
    "access-control-allow-origin",
    "access-control-allow-credentials",
    "vary",
}

_PARAM_PATTERN = re.compile(r"{([a-zA-Z_][a-zA-Z0-9_]*)}")


@dataclass(frozen=True)
class CacheCounter:
    """A counter bumped on every request of a route, cached or not.

    The handler counts on a miss. On a hit ``increment`` is called with the
    route parameter and returns the new value, which is patched into the
    stored body under ``counter.<name>``.
    """
    param: str
    name: str
    increment: Callable[[str], Optional[int]]


@dataclass(frozen=True)
class CacheRoute:
    """A cacheable route.

    Args:
        path:      Route pattern in FastAPI syntax, e.g. ``/v1/games/{game_id}``.
        resources: Resource names whose invalidation clears this route.
        entities:  Entity bindings as ``(model, route parameter)`` pairs.
        counter:   View counter to keep up to date on cache hits.
    """
    path: str
    resources: Tuple[str, ...] = ()
    entities: Tuple[Tuple[str, str], ...] = ()
    counter: Optional[CacheCounter] = None
    regex: Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        pattern = _PARAM_PATTERN.sub(lambda m: f"(?P<{m.group(1)}>[^/]+)", self.path)
        object.__setattr__(self, "regex", re.compile(f"^{pattern}/?$"))

    def match(self, path: str) -> Optional[Dict[str, str]]:
        m = self.regex.match(path)
        return m.groupdict() if m else None


@dataclass(frozen=True)
class CacheConfig:
    """Cacheable routes plus the list endpoint of each entity model"""
    routes: Tuple[CacheRoute, ...] = ()
    endpoints: Tuple[Tuple[str, str], ...] = ()

    def endpoint(self, model: str) -> Optional[str]:
        return dict(self.endpoints).get(model)


@dataclass(frozen=True)
class CacheTag:
    """Selects cache entries on invalidation. All set attributes are OR'ed."""
    path: Optional[str] = None
    resources: Tuple[str, ...] = ()
    entities: Tuple[Tuple[str, str], ...] = ()
    user_id: Optional[str] = None


@dataclass
class CachedResponse:
    status: int
    headers: Dict[str, str]
    body: str

    def to_json(self) -> str:
        return json.dumps({"status": self.status, "headers": self.headers, "body": self.body})

    @classmethod
    def from_json(cls, data: str) -> "CachedResponse":
        obj = json.loads(data)
        return cls(status=obj["status"], headers=obj["headers"], body=obj["body"])


class ApiCache:
    """Response cache with reverse-index invalidation"""

    def __init__(self, redis: Redis, config: CacheConfig):
        self.redis = redis
        self.config = config

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    @staticmethod
    def cache_key(user_id: Optional[str], path: str, query: Iterable[Tuple[str, str]] = ()) -> str:
        pairs = sorted(query)
        key = f"{CACHE_PREFIX}{user_id or 'anon'}:{path}"
        if pairs:
            key += "?" + urlencode(pairs)
        return key

    @staticmethod
    def resource_key(resource: str) -> str:
        return f"{REF_PREFIX}resource:{resource}"

    @staticmethod
    def user_key(user_id: str) -> str:
        return f"{REF_PREFIX}user:{user_id}"

    @staticmethod
    def entity_key(model: str, entity_id: str) -> str:
        return f"{REF_PREFIX}entity:{model}:{entity_id}"

    @staticmethod
    def path_key(path: str) -> str:
        return f"{REF_PREFIX}path:{path}"

    # ------------------------------------------------------------------
    # Read / write
    # ------------------------------------------------------------------

    def match(self, path: str) -> Optional[Tuple[CacheRoute, Dict[str, str]]]:
        """Find the cache route for a request path"""
        for route in self.config.routes:
            params = route.match(path)
            if params is not None:
                return route, params
        return None

    def get(self, key: str) -> Optional[CachedResponse]:
        hit = self.redis.get(key)
        return CachedResponse.from_json(hit) if hit else None

    def store(
        self,
        key: str,
        route: CacheRoute,
        params: Mapping[str, str],
        user_id: Optional[str],
        path: str,
        response: CachedResponse,
    ) -> None:
        """Save a response and register its key in every reverse index"""
        headers = {name: value for name, value in response.headers.items() if name.lower() not in VOLATILE_HEADERS}
        refs = [self.resource_key(resource) for resource in route.resources]
        if user_id:
            refs.append(self.user_key(user_id))
        for model, param in route.entities:
            if params.get(param):
                refs.append(self.entity_key(model, params[param]))
        refs.append(self.path_key(path))

        pipe = self.redis.pipeline()
        pipe.set(key, CachedResponse(response.status, headers, response.body).to_json())
        for ref in refs:
            pipe.sadd(ref, key)
        pipe.execute()
        logger.debug("Cached response", extra={"cache_key": key, "path": path})

    def update_counter(
        self,
        key: str,
        route: CacheRoute,
        params: Mapping[str, str],
        cached: CachedResponse,
    ) -> CachedResponse:
        """Bump the route's counter for a cache hit and patch the stored body"""
        counter = route.counter
        if counter is None or not params.get(counter.param):
            return cached
        value = counter.increment(params[counter.param])
        if value is None:
            return cached
        body = json.loads(cached.body)
        body.setdefault("counter", {})[counter.name] = value
        patched = CachedResponse(cached.status, cached.headers, json.dumps(body))
        # only if the entry still exists
        if self.redis.set(key, patched.to_json(), xx=True):
            logger.debug(f"Updated {counter.name} counter of cached response", extra={"cache_key": key})
        return patched

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------

    def invalidate(self, *tag_lists: Sequence[CacheTag]) -> int:
        """Delete the cache entries selected by the given tags.

        Within a tag the set attributes are OR'ed, tags of the same list are
        AND'ed and the lists themselves are OR'ed::

            invalidate([CacheTag(resources=("game",))])
                every entry of routes declaring "game"
            invalidate([CacheTag(path="/v1/releases"), CacheTag(user_id="u1")])
                the release list, but only u1's entries of it

        Returns:
            Number of deleted cache entries.
        """
        keys: Set[str] = set()
        for tags in tag_lists:
            selected: Optional[Set[str]] = None
            for tag in tags:
                members = self._members(tag)
                selected = members if selected is None else selected & members
            keys |= selected or set()

        if not keys:
            logger.debug("Nothing to invalidate")
            return 0
        deleted = self.redis.delete(*keys)
        logger.debug(f"Invalidated {deleted} cached response(s)")
        return deleted

    def _members(self, tag: CacheTag) -> Set[str]:
        refs: List[str] = []
        if tag.path:
            refs.append(self.path_key(tag.path))
        refs.extend(self.resource_key(resource) for resource in tag.resources)
        refs.extend(self.entity_key(model, entity_id) for model, entity_id in tag.entities)
        if tag.user_id:
            refs.append(self.user_key(tag.user_id))
        return set(self.redis.sunion(refs)) if refs else set()

    def invalidate_resources(self, *resources: str) -> int:
        return self.invalidate([CacheTag(resources=tuple(resources))])

    def invalidate_for_user(self, user_id: str, *tags: CacheTag) -> int:
        """Invalidate the given tags, but only among the user's own entries"""
        return self.invalidate([CacheTag(user_id=user_id), *tags])

    def invalidate_entity(self, model: str, entity_id: str, **related: str) -> int:
        """An entity changed: clear its details, its model's list and related entities.

        Related entities are passed as keyword arguments, e.g. ``game="mb"``.
        """
        entities = ((model, entity_id),) + tuple(related.items())
        tag_lists = [[CacheTag(entities=entities)]]
        endpoint = self.config.endpoint(model)
        if endpoint:
            tag_lists.append([CacheTag(path=endpoint)])
        return self.invalidate(*tag_lists)

    def invalidate_all_resources(self) -> int:
        """Invalidate everything any configured route declares"""
        resources = tuple(sorted({r for route in self.config.routes for r in route.resources}))
        keys = self._members(CacheTag(resources=resources))
        models = {model for route in self.config.routes for model, _ in route.entities}
        for model in sorted(models):
            entity_refs = list(self.redis.scan_iter(match=self.entity_key(model, "*")))
            if entity_refs:
                keys |= set(self.redis.sunion(entity_refs))
        return self.redis.delete(*keys) if keys else 0

    def invalidate_all(self) -> int:
        """Delete every cache entry and reverse index"""
        keys = list(self.redis.scan_iter(match=f"{CACHE_PREFIX}*")) + list(self.redis.scan_iter(match=f"{REF_PREFIX}*"))
        cleared = len([key for key in keys if key.startswith(CACHE_PREFIX)])
        if keys:
            self.redis.delete(*keys)
        return cleared
