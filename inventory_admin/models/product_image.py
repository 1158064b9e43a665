# Модель ProductImage: основное изображение (is_main) и изображения описания
from sqlalchemy import Boolean, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from inventory_admin.core.database import Base


class ProductImage(Base):
    __tablename__ = "product_images"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    file_name = Column(String(255), nullable=False)
    storage_path = Column(String(512), nullable=False, unique=True)
    mime_type = Column(String(64), nullable=False)
    is_main = Column(Boolean, default=False, nullable=False)
    position = Column(Integer, default=0, nullable=False)

    product = relationship("Product", back_populates="product_images")
