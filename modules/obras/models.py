"""
Модели данных ObraMap

Объект (obra) — строительная площадка, по которой ведутся продажи,
с контактами, задачами, коммерческими предложениями и фото.
Формат документов в хранилище совпадает с форматом мобильного клиента
(ключи nome, construtora, etapa, ...).
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar

from loguru import logger

E = TypeVar("E", bound=Enum)


class LeadStage(Enum):
    """Этап воронки продаж объекта"""
    LEAD = "Lead"
    CONTACTED = "Contato Inicial"
    VISIT_SCHEDULED = "Visita Agendada"
    NEGOTIATION = "Negociação"
    CLOSED = "Fechado"
    LOST = "Perdido"
    INACTIVE = "Inativo"

    @property
    def is_terminal(self) -> bool:
        """Конечные этапы не участвуют в автоматической инактивации"""
        return TERMINAL_STAGES[self]


class ConstructionPhase(Enum):
    """Фаза строительства (независима от этапа воронки)"""
    PROSPECTING = "Prospecção"
    FOUNDATION = "Fundação"
    STRUCTURE = "Estrutura"
    MASONRY = "Alvenaria"
    INSTALLATIONS = "Instalações"
    FINISHING = "Acabamento"
    COMPLETED = "Finalizada"


class TaskType(Enum):
    CALL = "Ligação"
    VISIT = "Visita"
    EMAIL = "E-mail"
    PROPOSAL = "Proposta"
    FOLLOW_UP = "Outro"


class TaskStatus(Enum):
    PENDING = "Pendente"
    DONE = "Concluída"


class Partner(Enum):
    """Представляемый бренд (representada)"""
    DM2 = "DM2"
    ALUMBRA = "Alumbra"
    MGM = "MGM"
    ROCA = "Roca"
    CONSTRUCOM = "Construcom"


def require_exhaustive(mapping: Mapping[E, Any], enum_cls: Type[E]) -> Mapping[E, Any]:
    """Проверка, что таблица покрывает все значения перечисления"""
    missing = set(enum_cls) - set(mapping)
    if missing:
        names = ", ".join(sorted(member.name for member in missing))
        raise TypeError(f"{enum_cls.__name__}: не обработаны значения {names}")
    return mapping


TERMINAL_STAGES: Mapping[LeadStage, bool] = require_exhaustive({
    LeadStage.LEAD: False,
    LeadStage.CONTACTED: False,
    LeadStage.VISIT_SCHEDULED: False,
    LeadStage.NEGOTIATION: False,
    LeadStage.CLOSED: True,
    LeadStage.LOST: True,
    LeadStage.INACTIVE: True,
}, LeadStage)

# Цвет метки объекта на карте
STAGE_PIN_COLORS: Mapping[LeadStage, str] = require_exhaustive({
    LeadStage.LEAD: "blue",
    LeadStage.CONTACTED: "deepskyblue",
    LeadStage.VISIT_SCHEDULED: "darkorange",
    LeadStage.NEGOTIATION: "gold",
    LeadStage.CLOSED: "green",
    LeadStage.LOST: "red",
    LeadStage.INACTIVE: "grey",
}, LeadStage)

# Каталог продукции по брендам
PARTNER_PRODUCTS: Mapping[Partner, List[str]] = require_exhaustive({
    Partner.DM2: ["Porta Corta-Fogo"],
    Partner.ALUMBRA: ["Disjuntores", "Acabamentos Elétricos"],
    Partner.MGM: ["Esquadrias de Alumínio", "Esquadrias de Madeira"],
    Partner.ROCA: ["Louças e Metais", "Porcelanato"],
    Partner.CONSTRUCOM: ["Bloco de Concreto", "Piso Intertravado", "Argamassas"],
}, Partner)


# ---------- Хелперы преобразования ----------

def parse_enum(enum_cls: Type[E], value: Any, default: E) -> E:
    """Значение перечисления из документа; неизвестные значения заменяются default"""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        logger.warning(f"Неизвестное значение {enum_cls.__name__}: {value!r}, используется {default.value!r}")
        return default


def parse_datetime(value: Any) -> Optional[datetime]:
    """Разбор ISO-строки в datetime с часовым поясом (UTC, если пояс не указан)"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        raw = str(value).strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            logger.warning(f"Не удалось разобрать дату-время: {value!r}")
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        logger.warning(f"Не удалось разобрать дату: {value!r}")
        return None


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _to_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def month_key(value: date) -> str:
    """Ключ месяца YYYY-MM"""
    return f"{value.year:04d}-{value.month:02d}"


# ---------- Записи ----------

@dataclass
class GeoPoint:
    lat: float
    lng: float

    def to_document(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}

    @classmethod
    def from_document(cls, data: Any) -> 'GeoPoint':
        if isinstance(data, (list, tuple)):
            return cls(lat=_to_float(data[0]), lng=_to_float(data[1]))
        return cls(lat=_to_float(data.get("lat")), lng=_to_float(data.get("lng")))


@dataclass
class Contact:
    """Контакт на объекте"""
    id: str
    name: str
    phone: str = ""
    email: str = ""
    role: str = ""

    def to_document(self) -> Dict[str, Any]:
        return {"id": self.id, "nome": self.name, "telefone": self.phone,
                "email": self.email, "cargo": self.role}

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> 'Contact':
        return cls(
            id=str(data.get("id", "")),
            name=data.get("nome", ""),
            phone=data.get("telefone", ""),
            email=data.get("email", ""),
            role=data.get("cargo", ""),
        )


@dataclass
class Task:
    """Задача по объекту (звонок, визит, ...)"""
    id: str
    lead_id: str
    title: str
    due: datetime
    type: TaskType
    status: TaskStatus = TaskStatus.PENDING
    description: str = ""

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "obraId": self.lead_id,
            "titulo": self.title,
            "descricao": self.description,
            "data": format_datetime(self.due),
            "tipo": self.type.value,
            "status": self.status.value,
        }

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> 'Task':
        return cls(
            id=str(data.get("id", "")),
            lead_id=str(data.get("obraId", "")),
            title=data.get("titulo", ""),
            description=data.get("descricao", ""),
            due=parse_datetime(data.get("data")) or datetime.now(timezone.utc),
            type=parse_enum(TaskType, data.get("tipo"), TaskType.FOLLOW_UP),
            status=parse_enum(TaskStatus, data.get("status"), TaskStatus.PENDING),
        )


@dataclass
class Photo:
    """Файл в хранилище: ссылка для скачивания и путь"""
    url: str
    ref_path: str

    def to_document(self) -> Dict[str, str]:
        return {"url": self.url, "refPath": self.ref_path}

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> 'Photo':
        return cls(url=data.get("url", ""), ref_path=data.get("refPath", ""))


@dataclass
class Proposal:
    """Коммерческое предложение бренда по объекту"""
    id: str
    partner: Partner
    products: List[str]
    value: float
    date: date
    attachment: Optional[Photo] = None

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "representada": self.partner.value,
            "produtos": list(self.products),
            "valor": self.value,
            "data": self.date.isoformat(),
            "anexo": self.attachment.to_document() if self.attachment else None,
        }

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> 'Proposal':
        products = data.get("produtos")
        if products is None and data.get("produto"):
            # старые документы хранили один продукт
            products = [data["produto"]]
        attachment = data.get("anexo")
        return cls(
            id=str(data.get("id", "")),
            partner=parse_enum(Partner, data.get("representada"), Partner.DM2),
            products=list(products or []),
            value=_to_float(data.get("valor")),
            date=parse_date(data.get("data")) or date.today(),
            attachment=Photo.from_document(attachment) if attachment else None,
        )


@dataclass
class Lead:
    """Объект (obra) — сделка в воронке"""
    id: Optional[str]
    user_id: str
    name: str
    builder: str
    lat: float
    lng: float
    stage: LeadStage = LeadStage.LEAD
    phase: ConstructionPhase = ConstructionPhase.PROSPECTING
    registration_date: Optional[date] = None
    last_updated: Optional[datetime] = None
    contacts: List[Contact] = field(default_factory=list)
    tasks: List[Task] = field(default_factory=list)
    proposals: List[Proposal] = field(default_factory=list)
    photos: List[Photo] = field(default_factory=list)

    @property
    def position(self) -> GeoPoint:
        return GeoPoint(self.lat, self.lng)

    def touch(self, now: Optional[datetime] = None) -> None:
        """Обновление отметки последнего изменения"""
        self.last_updated = now or datetime.now(timezone.utc)

    def to_document(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "nome": self.name,
            "construtora": self.builder,
            "lat": self.lat,
            "lng": self.lng,
            "etapa": self.stage.value,
            "fase": self.phase.value,
            "dataCadastro": self.registration_date.isoformat() if self.registration_date else None,
            "lastUpdated": format_datetime(self.last_updated),
            "contatos": [c.to_document() for c in self.contacts],
            "tarefas": [t.to_document() for t in self.tasks],
            "propostas": [p.to_document() for p in self.proposals],
            "fotos": [p.to_document() for p in self.photos],
        }

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> 'Lead':
        return cls(
            id=data.get("id"),
            user_id=str(data.get("userId", "")),
            name=data.get("nome", ""),
            builder=data.get("construtora", ""),
            lat=_to_float(data.get("lat")),
            lng=_to_float(data.get("lng")),
            stage=parse_enum(LeadStage, data.get("etapa"), LeadStage.LEAD),
            phase=parse_enum(ConstructionPhase, data.get("fase"), ConstructionPhase.PROSPECTING),
            registration_date=parse_date(data.get("dataCadastro")),
            last_updated=parse_datetime(data.get("lastUpdated")),
            contacts=[Contact.from_document(c) for c in data.get("contatos") or []],
            tasks=[Task.from_document(t) for t in data.get("tarefas") or []],
            proposals=[Proposal.from_document(p) for p in data.get("propostas") or []],
            photos=[Photo.from_document(p) for p in data.get("fotos") or []],
        )


@dataclass
class Region:
    """Нарисованный пользователем полигон (территория продаж)"""
    id: Optional[str]
    points: List[GeoPoint]
    color: str

    def to_document(self) -> Dict[str, Any]:
        return {"points": [p.to_document() for p in self.points], "color": self.color}

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> 'Region':
        return cls(
            id=data.get("id"),
            points=[GeoPoint.from_document(p) for p in data.get("points") or []],
            color=data.get("color", "blue"),
        )


@dataclass
class Goals:
    """Цели (metas) на календарный месяц"""
    month: str  # YYYY-MM
    total_sales: float = 0.0
    visits: int = 0
    calls: int = 0
    by_partner: Dict[Partner, float] = field(default_factory=dict)

    def partner_target(self, partner: Partner) -> float:
        return self.by_partner.get(partner, 0.0)

    def to_document(self) -> Dict[str, Any]:
        return {
            "vendasTotais": self.total_sales,
            "visitas": self.visits,
            "ligacoes": self.calls,
            "porRepresentada": {p.value: v for p, v in self.by_partner.items()},
        }

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> 'Goals':
        by_partner: Dict[Partner, float] = {}
        for key, value in (data.get("porRepresentada") or {}).items():
            try:
                by_partner[Partner(key)] = _to_float(value)
            except ValueError:
                logger.warning(f"Цель для неизвестного бренда пропущена: {key!r}")
        return cls(
            month=str(data.get("id", "")),
            total_sales=_to_float(data.get("vendasTotais")),
            visits=int(_to_float(data.get("visitas"))),
            calls=int(_to_float(data.get("ligacoes"))),
            by_partner=by_partner,
        )


@dataclass
class User:
    """Профиль пользователя (зеркало учетной записи)"""
    id: str
    full_name: str
    email: str

    def to_document(self) -> Dict[str, Any]:
        return {"nomeCompleto": self.full_name, "email": self.email}

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> 'User':
        return cls(
            id=str(data.get("id", "")),
            full_name=data.get("nomeCompleto", ""),
            email=data.get("email", ""),
        )
