"""
FetchFeed application package.

Layered the same way throughout:

  feedapp/repositories/  pure I/O: loading from and persisting to JSON files.
  feedapp/services/      business logic: validation, comment trees, likes,
                           roasts, rankings.

``FetchFeed`` (in ``fetchfeed.py``) is the integration point: it creates the
repository and service instances from the loaded config and exposes them as
public attributes (e.g. ``feed.post_service``).  Route handlers in
``fetchfeed_server.py`` call these services directly.
"""
