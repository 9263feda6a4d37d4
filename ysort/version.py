"""版本信息"""

__version__ = "0.1.0"
__author__ = "yafo-ai"
__description__ = "SQLAlchemy 模型的连续排序位置管理库"
