"""
Configuration module for the task queue.
Loads settings from environment variables or .env file.
任务队列配置模块。
从环境变量或 .env 文件加载所有配置项。
"""

import os
from dotenv import load_dotenv

load_dotenv()  # 自动读取项目根目录的 .env 文件（若存在），优先级低于系统环境变量

# --- Logging ---
# --- 日志 ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()  # 未指定 --verbose 时的日志级别

# --- Task Registry ---
# --- 任务注册表 ---
# false: update = remove + add (dependants lose their edge, a failed update leaves the task deleted)
# true:  validate first, then replace the definition in place
# false：更新 = 删除 + 重新添加（下游任务失去对它的依赖，失败时任务已被删除）
# true： 先校验新依赖，再原地替换定义
ATOMIC_TASK_UPDATES = os.getenv("ATOMIC_TASK_UPDATES", "false").lower() == "true"
