# fuelshare/services/health_service.py
from typing import Dict, Any
from datetime import datetime, timezone
import psutil
import platform
from fuelshare.config import settings
from fuelshare.database import check_db_connection
import logging

logger = logging.getLogger(__name__)

async def get_detailed_health() -> Dict[str, Any]:
    """Detailed health status of the database and the host"""
    health_status = {
        "services": {},
        "system": {},
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    try:
        db_healthy = await check_db_connection()
        health_status["services"]["database"] = {
            "healthy": db_healthy,
            "type": "PostgreSQL",
            "status": "connected" if db_healthy else "disconnected",
        }
    except Exception as e:
        health_status["services"]["database"] = {"healthy": False, "error": str(e)}

    try:
        health_status["system"] = {
            "cpu_percent": psutil.cpu_percent(interval=0.1),
            "memory_percent": psutil.virtual_memory().percent,
            "disk_percent": psutil.disk_usage("/").percent,
            "python_version": platform.python_version(),
            "uptime_seconds": datetime.now(timezone.utc).timestamp() - psutil.boot_time(),
        }
    except Exception as e:
        logger.error(f"Failed to get system metrics: {e}")

    all_services_healthy = all(s.get("healthy", False) for s in health_status["services"].values())
    health_status["overall_health"] = "healthy" if all_services_healthy else "degraded"

    return health_status
