# fasttrack/adapters/outbound/persistence/models/base_model.py

from sqlalchemy import BigInteger, Integer

from fasttrack.adapters.outbound.persistence.database import Base

# BIGINT keys on PostgreSQL; SQLite only autoincrements INTEGER PRIMARY KEY
BigIntPK = BigInteger().with_variant(Integer, "sqlite")

__all__ = ["Base", "BigIntPK"]
