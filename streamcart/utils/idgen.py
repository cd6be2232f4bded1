from ulid import ULID


def new_ulid(prefix: str | None = None) -> str:
    value = str(ULID()).lower()
    return f"{prefix}{value}" if prefix else value


def new_session_id() -> str:
    return new_ulid("se_")


def new_product_id() -> str:
    return new_ulid("pr_")


def new_view_id() -> str:
    return new_ulid("vw_")


def new_message_id() -> str:
    return new_ulid("cm_")


def new_local_message_id() -> str:
    return new_ulid("local_")


def new_connection_id() -> str:
    return new_ulid("cn_")


def new_anonymous_identity() -> str:
    return new_ulid("anon_")
