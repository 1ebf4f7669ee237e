"""JSON Schemas shipped with Obolus and the registry that validates against them."""
