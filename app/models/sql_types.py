from sqlalchemy import BigInteger, Integer

# PostgreSQL uses BIGINT, SQLite tests need INTEGER for autoincrement PK behavior.
FIXTURE_ID_SQL_TYPE = BigInteger().with_variant(Integer, "sqlite")
BROADCAST_ID_SQL_TYPE = BigInteger().with_variant(Integer, "sqlite")
