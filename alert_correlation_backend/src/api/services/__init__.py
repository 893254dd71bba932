"""Business-logic layer: NerdGraph collection, enrichment and alert/entity correlation.

- alerts_service.py (conditions + policies, enriched)
- entities_service.py (entity inventory correlated with conditions)
- pagination.py / enrichment.py / correlation.py / nrql.py / terms.py (pure building blocks)
"""

# Import side-effects are intentionally avoided here; modules are imported by routers/services as needed.
