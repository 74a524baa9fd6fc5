"""Recipe (bill of ingredients) models keyed by the POS product id."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stockrecon.db.base import Base, TimestampMixin


class Recipe(Base, TimestampMixin):
    """A sellable POS product and the ingredients one unit of it consumes."""

    __tablename__ = "recipes"

    id: Mapped[int] = mapped_column(primary_key=True)
    pos_product_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_synced_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    lines: Mapped[list["RecipeIngredient"]] = relationship(
        "RecipeIngredient",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="RecipeIngredient.position",
    )

    @property
    def base_lines(self) -> list["RecipeIngredient"]:
        return [line for line in self.lines if not line.is_modifier]

    def modifier_line(self, modification_id: str) -> Optional["RecipeIngredient"]:
        """Recipe line consumed when the given POS modification is selected."""
        for line in self.lines:
            if line.is_modifier and line.pos_modification_id == modification_id:
                return line
        return None


class RecipeIngredient(Base):
    """A single ingredient line in a recipe.

    Non-modifier lines are the base composition; modifier lines only apply
    when the matching POS modification was selected on the sold item.
    """

    __tablename__ = "recipe_ingredients"
    __table_args__ = (
        UniqueConstraint(
            "recipe_id", "ingredient_id", "pos_modification_id",
            name="uq_recipe_ingredient_modification",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    recipe_id: Mapped[int] = mapped_column(
        ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ingredient_id: Mapped[int] = mapped_column(
        ForeignKey("ingredients.id"), nullable=False, index=True
    )
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    unit: Mapped[str] = mapped_column(String(20), default="g", nullable=False)
    is_modifier: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    pos_modification_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    modifier_group: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    recipe: Mapped["Recipe"] = relationship("Recipe", back_populates="lines")
    ingredient: Mapped["Ingredient"] = relationship("Ingredient")

