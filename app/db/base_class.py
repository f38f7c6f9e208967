from sqlalchemy.orm import declarative_base

# Declarative base shared by all models; Alembic reads Base.metadata
Base = declarative_base()
