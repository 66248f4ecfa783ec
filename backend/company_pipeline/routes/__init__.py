# Routes package init
"""
Company Pipeline Backend: API Routes Package
============================================

Route Inventory:
    - companies.py:  POST /companies   (create company through the pipeline)
    - health.py:     GET  /health      (service health + pipeline summary)

Routes stay thin: decode the request, call the Dispatcher, return the result.
Which behaviors run is decided by pipeline.py, not by the routes.
"""
