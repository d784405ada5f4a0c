from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

from inspection.errors import StorageDecodeError
from inspection.models import Issue, Project, Store, Template

logger = logging.getLogger("inspection")

DEFAULT_TEMPLATES: List[Dict[str, Any]] = [
    {
        "id": "waterproof",
        "name": "防水工程",
        "items": [
            "卫生间、阳台、厨房防水施工完成且闭水试验通过",
            "墙/地面无空鼓、开裂、起砂、渗漏",
            "地漏及泛水坡度正确，无倒坡",
            "管根、阴阳角、套管处附加层完整",
            "防水层上翻高度符合规范",
        ],
    },
    {
        "id": "electrical",
        "name": "电气工程",
        "items": [
            "配电箱固定牢靠，回路标识清晰",
            "导线规格/颜色/敷设规范，穿管无破损",
            "插座接地/接零正确，极性正确",
            "开关、插座、灯具安装牢固、位置正确",
            "弱电箱、入户信息端口标注清楚",
        ],
    },
    {
        "id": "fire",
        "name": "消防/安防",
        "items": [
            "公共区域灭火器配置齐全、在有效期内",
            "消火栓、水泵接合器外观完好、标识清晰",
            "消防门闭门器灵活、常闭，合页无异响",
            "应急照明、疏散指示灯通电正常",
            "消防管道无渗漏，支吊架间距符合要求",
        ],
    },
    {
        "id": "plumbing",
        "name": "给排水/暖通",
        "items": [
            "供水、回水管道无渗漏，阀门启闭灵活",
            "排水通畅，存水弯设置正确",
            "暖通风口安装牢固、风量基本达标",
            "设备基础减振、冷凝水排放顺畅",
            "水表、热量表安装方向正确、可读性好",
        ],
    },
    {
        "id": "finishing",
        "name": "精装/公区装饰",
        "items": [
            "墙地砖空鼓率符合要求，勾缝均匀",
            "乳胶漆表面平整、无流坠、无明显色差",
            "门窗安装牢固、开启灵活、密封良好",
            "栏杆扶手牢固、缝隙间距合规",
            "吊顶造型顺直，检修口位置合理",
        ],
    },
]


def default_templates() -> List[Template]:
    return [Template.from_dict(t) for t in DEFAULT_TEMPLATES]


def store_from_dict(data: Dict[str, Any]) -> Store:
    templates = data.get("templates")
    return Store(
        projects=[Project.from_dict(p) for p in data.get("projects") or []],
        issues=[Issue.from_dict(i) for i in data.get("issues") or []],
        templates=[Template.from_dict(t) for t in templates] if templates is not None else default_templates(),
    )


def _quarantine(path: Path) -> Path:
    target = path.with_name(f"{path.name}.corrupt-{datetime.now().strftime('%Y%m%d%H%M%S')}")
    os.replace(path, target)
    return target


def load_store(path: Path, strict: bool = False) -> Store:
    if not path.exists():
        logger.info("STORE_MISSING path=%s using defaults", path)
        return Store(templates=default_templates())
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, dict):
            raise ValueError("store root is not an object")
        store = store_from_dict(data)
    except (OSError, ValueError, TypeError, AttributeError) as exc:
        if strict:
            raise StorageDecodeError(f"cannot decode store at {path}: {exc}") from exc
        moved = _quarantine(path)
        logger.warning("STORE_CORRUPT path=%s moved_to=%s error=%s", path, moved, exc)
        return Store(templates=default_templates())
    logger.info(
        "STORE_LOADED path=%s projects=%d issues=%d templates=%d",
        path,
        len(store.projects),
        len(store.issues),
        len(store.templates),
    )
    return store


def save_store(store: Store, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with open(tmp, "w", encoding="utf-8") as fh:
        json.dump(store.to_dict(), fh, ensure_ascii=False)
    tmp.replace(path)
    logger.info("STORE_SAVED path=%s issues=%d", path, len(store.issues))
