from sqlalchemy import Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from sitecast.database import Base


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(Integer, index=True)
    name = Column(String(200), nullable=False)
    project_type = Column(String(50), index=True)  # residential, commercial, renovation, ...
    status = Column(String(20), nullable=False, default="active")  # active, on_hold, completed
    budget = Column(Float, default=0.0)
    actual_cost = Column(Float)  # final cost, set when completed
    completion_percentage = Column(Float, default=0.0)  # 0-100
    start_date = Column(Date)
    end_date = Column(Date)
    latitude = Column(Float)
    longitude = Column(Float)
    gps_coordinates = Column(String(100))  # PostGIS text, "POINT(lon lat)"
    created_at = Column(DateTime, server_default=func.now())

    tasks = relationship("Task", back_populates="project")
    expenses = relationship("Expense")
    change_orders = relationship("ChangeOrder")
    quality_inspections = relationship("QualityInspection")
    quality_analyses = relationship("QualityAnalysis")
    daily_reports = relationship("DailyReport")
    cost_entries = relationship("CostEntry")
    material_usage = relationship("MaterialUsage")
    time_entries = relationship("TimeEntry")


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    status = Column(String(20), default="pending")  # pending, in_progress, completed
    construction_phase = Column(String(50))  # matches weather_sensitive_activities.activity_type
    weather_sensitive = Column(Boolean, default=False)
    start_date = Column(Date)
    end_date = Column(Date)

    project = relationship("Project", back_populates="tasks")


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False, default=0.0)
    expense_date = Column(Date)
    category = Column(String(50))


class ChangeOrder(Base):
    __tablename__ = "change_orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    title = Column(String(200))
    reason = Column(Text)
    category = Column(String(50))  # scope, design, resource, labor, material, equipment, ...
    amount = Column(Float, default=0.0)
    status = Column(String(20), default="pending")  # pending, approved, rejected, cancelled
    created_at = Column(DateTime, server_default=func.now())


class QualityInspection(Base):
    __tablename__ = "quality_inspections"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    score = Column(Float)  # 0-100
    inspected_at = Column(Date)


class QualityAnalysis(Base):
    """Defect counts from photo analysis runs."""
    __tablename__ = "ai_quality_analysis"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    defects_detected = Column(Integer, default=0)
    analyzed_at = Column(DateTime, server_default=func.now())


class DailyReport(Base):
    __tablename__ = "daily_reports"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    report_date = Column(Date, nullable=False)
    weather_conditions = Column(String(100))
    weather_delay = Column(Boolean, default=False)


class CostEntry(Base):
    __tablename__ = "cost_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False, default=0.0)
    entry_date = Column(Date, nullable=False)
    description = Column(String(200))


class MaterialUsage(Base):
    __tablename__ = "material_usage"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    quantity = Column(Float, default=0.0)
    unit_cost = Column(Float, default=0.0)
    total_cost = Column(Float)
    used_at = Column(Date)


class TimeEntry(Base):
    __tablename__ = "time_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    hours_worked = Column(Float, default=0.0)
    hourly_rate = Column(Float, default=0.0)
    created_at = Column(DateTime, server_default=func.now())
