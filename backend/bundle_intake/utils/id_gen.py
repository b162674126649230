import secrets

def bundle_id(label: str = "bundle") -> str:
    return f"{label}_{secrets.token_hex(6)}"
