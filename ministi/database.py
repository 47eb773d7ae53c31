import sqlite3
import logging

class DatabaseEngine:
    logger = logging.getLogger("MiniSTI")

    def __init__(self, db_path=":memory:"):
        self.db_path = db_path
        # Transactions are opened explicitly by begin().
        self.connection = sqlite3.connect(db_path, isolation_level=None)
        self.connection.row_factory = sqlite3.Row

    def _log(self, sql, params=None):
        msg = f"[SQL EXECUTE]: {sql}"
        if params:
            msg += f" | [PARAMS]: {params}"
        self.logger.debug(msg)

    def execute(self, sql, params=None, return_lastrowid=False):
        self._log(sql, params)
        cursor = self.connection.cursor()
        try:
            cursor.execute(sql, tuple(params or ()))
            if return_lastrowid:
                return cursor.lastrowid
            return cursor.fetchall()
        finally:
            cursor.close()

    def execute_insert(self, sql, params=None):
        return self.execute(sql, params, return_lastrowid=True)

    @property
    def in_transaction(self):
        return self.connection.in_transaction

    def begin(self):
        if not self.in_transaction:
            self.execute("BEGIN")

    def commit(self):
        if self.in_transaction:
            self.execute("COMMIT")

    def rollback(self):
        if self.in_transaction:
            self.execute("ROLLBACK")

    def close(self):
        self.connection.close()
