from pathlib import Path

# 仓库根目录（config/ 的上一级）
PROJECT_ROOT = Path(__file__).resolve().parent.parent
