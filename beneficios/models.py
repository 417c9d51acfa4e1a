# beneficios/models.py

from datetime import datetime, timezone
from . import db
from .utils import date_str


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


# Classe base para adicionar campos de timestamp automaticamente
class BaseModel(db.Model):
    __abstract__ = True
    id = db.Column(db.Integer, primary_key=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)


class Employee(BaseModel):
    """Cadastro de funcionários elegíveis aos benefícios. Nunca é apagado."""
    __tablename__ = 'employees'
    matricula = db.Column(db.String(20), unique=True, nullable=False)
    name = db.Column(db.String(150), nullable=False)
    cost_center = db.Column(db.String(50), nullable=False)
    branch = db.Column(db.String(20), nullable=False)
    admission_date = db.Column(db.Date, nullable=False)
    # NULL = funcionário ativo
    termination_date = db.Column(db.Date, nullable=True)

    # --- FLAGS DE EXCLUSÃO POR BENEFÍCIO ---
    voucher_market_excluded = db.Column(db.Boolean, nullable=False, default=False)
    voucher_meal_excluded = db.Column(db.Boolean, nullable=False, default=False)

    @property
    def is_active(self):
        return self.termination_date is None

    def to_dict(self):
        return {
            'id': self.id,
            'matricula': self.matricula,
            'name': self.name,
            'costCenter': self.cost_center,
            'branch': self.branch,
            'admissionDate': date_str(self.admission_date),
            'terminationDate': date_str(self.termination_date),
            'voucherMarketExcluded': bool(self.voucher_market_excluded),
            'voucherMealExcluded': bool(self.voucher_meal_excluded),
        }

    def to_summary(self):
        """Versão resumida embutida nas listas de lançamentos."""
        return {
            'id': self.id,
            'name': self.name,
            'matricula': self.matricula,
            'branch': self.branch,
            'costCenter': self.cost_center,
            'admissionDate': date_str(self.admission_date),
            'terminationDate': date_str(self.termination_date),
        }
