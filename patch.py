import dataclasses
import typing

# ============================================
# Partial update 合併
# ============================================

NoneType = type(None)


def _is_optional(hint):
    return NoneType in typing.get_args(hint)


def apply_patch(target, changes):
    """
    把 request 裡有出現的欄位複製到 entity 上

    changes 是 update schema load 出來的 dict,只包含 request body
    實際帶上的 key。規則:
    1. 沒出現的 key 不動 (省略 = 維持原值)
    2. 出現且為 None 只允許在 Optional 欄位,代表清空該欄位
    3. 欄位名稱不存在或對非 Optional 欄位給 None 是程式錯誤,直接丟 TypeError

    Returns:
        dict: {field: {'old': ..., 'new': ...}},只列出值真的有變的欄位
    """
    if not dataclasses.is_dataclass(target):
        raise TypeError(f"cannot patch {type(target).__name__}: not an entity")

    hints = typing.get_type_hints(type(target))
    field_names = {f.name for f in dataclasses.fields(target)}

    diff = {}
    for name, new_value in changes.items():
        if name not in field_names:
            raise TypeError(f"{type(target).__name__} has no field {name!r}")

        if new_value is None and not _is_optional(hints[name]):
            raise TypeError(f"{type(target).__name__}.{name} is not optional")

        old_value = getattr(target, name)
        if old_value != new_value:
            diff[name] = {'old': old_value, 'new': new_value}
            setattr(target, name, new_value)

    return diff
