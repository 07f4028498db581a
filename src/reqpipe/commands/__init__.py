"""Built-in CLI sub-commands for reqpipe.

* :func:`~reqpipe.commands.request.request_command` -- send a request
  through the configured pipeline.
* :data:`~reqpipe.commands.cache.cache_app` -- inspect and prune the
  durable response store.
* :data:`~reqpipe.commands.config.config_app` -- view and modify the
  global configuration.
"""
