"""
audit_kernel -- domain core of the continuous accounting audit engine.

    domain/     entries, problems, results, collaborator ports, clock
    db/         SQLAlchemy base and engine helpers
    models/     ORM model for verification history
    exceptions  typed error hierarchy
    logging_config  structured JSON logging
"""
