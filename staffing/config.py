from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict


@dataclass
class AppConfig:
    """Конфигурация приложения."""
    
    # Пути
    app_root: Path
    logs_dir: Path
    
    # Настройки расчета
    base_work_hours: float = 166.6
    default_main_reserve_rate: float = 0.08
    default_other_reserve_rate: float = 0.05
    fallback_unit_key: str = "beijing"
    
    # Соответствие названий подразделений ключам резервных коэффициентов
    unit_keys: Dict[str, str] = field(default_factory=lambda: {
        "北京客运段": "beijing",
        "石家庄客运段": "shijiazhuang",
        "天津客运段": "tianjin",
    })
    
    # Параллельный расчет пар (норматив × подразделение)
    max_workers: int | None = None
    log_level: str = "INFO"
    
    @classmethod
    def create_default(cls, app_root: Path = None) -> AppConfig:
        """Создает конфигурацию по умолчанию."""
        if app_root is None:
            app_root = Path(__file__).parent.parent
        
        return cls(
            app_root=app_root,
            logs_dir=app_root / "logs",
        )
    
    def ensure_directories(self) -> None:
        """Создает необходимые директории."""
        self.logs_dir.mkdir(parents=True, exist_ok=True)
    
    def unit_key(self, unit_name: str) -> str:
        """Ключ резервного коэффициента для подразделения."""
        return self.unit_keys.get(unit_name, self.fallback_unit_key)


# Глобальный экземпляр конфигурации
APP_CONFIG = AppConfig.create_default()
