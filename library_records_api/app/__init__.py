"""
Application package.

The service is organised in layers, leaves first:

* ``stable``: growable memories, the region allocator, the durable
  cell and the durable B-tree map;
* ``core``: settings, logging, service errors and the storage
  container that wires the stable structures together;
* ``schemas``: pydantic models of entities, payloads and messages;
* ``services``: the record operations and id allocation;
* ``api``: versioned FastAPI routers.

``main`` assembles the FastAPI application; run it with::

    uvicorn library_records_api.app.main:app
"""
