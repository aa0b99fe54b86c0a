"""
SQL 构造器

表名、列名全部来自配置中的模式描述，语句使用命名绑定参数。
"""
from typing import Any, Dict, Mapping, Tuple

from app.core.config import SchemaConfig, TableConfig


class QueryBuilder:
    """根据 SchemaConfig 生成 SQL"""

    def __init__(self, schema: SchemaConfig):
        self.schema = schema
        self.users = schema.user_table
        self.categs = schema.categ_table
        self.files = schema.file_table

    def _table(self, table: TableConfig) -> str:
        return f"{self.schema.name}.{table.name}"

    @staticmethod
    def _select_list(table: TableConfig, *keys: str) -> str:
        cols = table.columns
        return ", ".join(getattr(cols, key) for key in keys)

    def _insert(self, table: TableConfig, keys: Tuple[str, ...]) -> str:
        cols = table.columns
        names = ", ".join(getattr(cols, key) for key in keys)
        binds = ", ".join(f":{key}" for key in keys)
        return f"INSERT INTO {self._table(table)} ({names}) VALUES ({binds})"

    def _update(
        self,
        table: TableConfig,
        id_key: str,
        id_value: str,
        old: Mapping[str, Any],
        new: Mapping[str, Any],
        updated_at: int,
    ) -> Tuple[str, Dict[str, Any]]:
        """
        动态 UPDATE

        只包含新旧值不同的字段，updated_at 总是更新。

        Returns:
            (sql, params)
        """
        cols = table.columns
        assignments = []
        params: Dict[str, Any] = {}
        for key, value in new.items():
            if key in old and old[key] == value:
                continue
            assignments.append(f"{getattr(cols, key)} = :{key}")
            params[key] = value
        assignments.append(f"{cols.updated_at} = :updated_at")
        params["updated_at"] = updated_at
        params[id_key] = id_value

        sql = (
            f"UPDATE {self._table(table)} SET {', '.join(assignments)} "
            f"WHERE {getattr(cols, id_key)} = :{id_key}"
        )
        return sql, params

    def _delete(self, table: TableConfig, id_key: str) -> str:
        return f"DELETE FROM {self._table(table)} WHERE {getattr(table.columns, id_key)} = :{id_key}"

    # ---------- 用户 ----------

    USER_FIELDS = ("user_id", "name", "updated_at")

    def insert_user(self) -> str:
        return self._insert(self.users, ("user_id", "name", "password", "updated_at"))

    def select_all_users(self) -> str:
        return f"SELECT {self._select_list(self.users, *self.USER_FIELDS)} FROM {self._table(self.users)}"

    def select_user_by_id(self) -> str:
        return f"{self.select_all_users()} WHERE {self.users.columns.user_id} = :user_id"

    def select_user_id_by_name(self) -> str:
        cols = self.users.columns
        return f"SELECT {cols.user_id} FROM {self._table(self.users)} WHERE {cols.name} = :name"

    def select_credentials(self) -> str:
        cols = self.users.columns
        return (
            f"SELECT {cols.user_id}, {cols.name}, {cols.password} "
            f"FROM {self._table(self.users)} WHERE {cols.name} = :name"
        )

    def update_user(self, user_id: str, old: Mapping[str, Any], new: Mapping[str, Any], updated_at: int):
        return self._update(self.users, "user_id", user_id, old, new, updated_at)

    def delete_user(self) -> str:
        return self._delete(self.users, "user_id")

    # ---------- 分类 ----------

    CATEG_FIELDS = ("categ_id", "user_id", "name", "updated_at")

    def insert_category(self) -> str:
        return self._insert(self.categs, self.CATEG_FIELDS)

    def select_categories_by_user(self) -> str:
        return (
            f"SELECT {self._select_list(self.categs, *self.CATEG_FIELDS)} FROM {self._table(self.categs)} "
            f"WHERE {self.categs.columns.user_id} = :user_id"
        )

    def select_category_by_id(self) -> str:
        return (
            f"SELECT {self._select_list(self.categs, *self.CATEG_FIELDS)} FROM {self._table(self.categs)} "
            f"WHERE {self.categs.columns.categ_id} = :categ_id"
        )

    def update_category(self, categ_id: str, old: Mapping[str, Any], new: Mapping[str, Any], updated_at: int):
        return self._update(self.categs, "categ_id", categ_id, old, new, updated_at)

    def delete_category(self) -> str:
        return self._delete(self.categs, "categ_id")

    # ---------- 文件 ----------

    FILE_FIELDS = ("file_id", "categ_id", "name", "extension", "mimetype", "updated_at")

    def insert_file(self) -> str:
        return self._insert(self.files, self.FILE_FIELDS)

    def select_files_by_category(self) -> str:
        return (
            f"SELECT {self._select_list(self.files, *self.FILE_FIELDS)} FROM {self._table(self.files)} "
            f"WHERE {self.files.columns.categ_id} = :categ_id"
        )

    def select_file_by_id(self) -> str:
        return (
            f"SELECT {self._select_list(self.files, *self.FILE_FIELDS)} FROM {self._table(self.files)} "
            f"WHERE {self.files.columns.file_id} = :file_id"
        )

    def update_file(self, file_id: str, old: Mapping[str, Any], new: Mapping[str, Any], updated_at: int):
        return self._update(self.files, "file_id", file_id, old, new, updated_at)

    def delete_file(self) -> str:
        return self._delete(self.files, "file_id")

    # ---------- 模式校验 ----------

    def probes(self) -> Dict[str, str]:
        """每张表一条不返回行的探测语句，用于校验表和列是否存在"""
        probes = {}
        for table in (self.users, self.categs, self.files):
            names = ", ".join(table.columns.model_dump().values())
            probes[table.name] = f"SELECT {names} FROM {self._table(table)} WHERE 1 = 0"
        return probes
