from __future__ import annotations

from ..extensions import db
from gymdesk.time_utils import to_utc_z, to_iso_date


class DietPlan(db.Model):
    __tablename__ = "diet_plans"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    member_id = db.Column(db.Integer, nullable=False, index=True)
    member_name = db.Column(db.String(161), nullable=False)

    plan_name = db.Column(db.String(120), nullable=False)
    goal = db.Column(db.String(32), nullable=False)  # Weight Loss, Muscle Gain, Maintenance, Cutting, Bulking
    daily_calories = db.Column(db.Integer, nullable=False, default=0)
    protein_grams = db.Column(db.Integer, nullable=False, default=0)
    carbs_grams = db.Column(db.Integer, nullable=False, default=0)
    fats_grams = db.Column(db.Integer, nullable=False, default=0)

    breakfast = db.Column(db.Text, nullable=True)
    lunch = db.Column(db.Text, nullable=True)
    dinner = db.Column(db.Text, nullable=True)
    snacks = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=True)
    status = db.Column(db.String(16), nullable=False, default="Active")  # Active, Completed, Inactive

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "member_id": self.member_id,
            "member_name": self.member_name,
            "plan_name": self.plan_name,
            "goal": self.goal,
            "daily_calories": self.daily_calories,
            "protein_grams": self.protein_grams,
            "carbs_grams": self.carbs_grams,
            "fats_grams": self.fats_grams,
            "meals": {
                "breakfast": self.breakfast,
                "lunch": self.lunch,
                "dinner": self.dinner,
                "snacks": self.snacks,
            },
            "notes": self.notes,
            "start_date": to_iso_date(self.start_date),
            "end_date": to_iso_date(self.end_date),
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
