"""
Hypothesis settings shared by the property-based tests.
"""
# 说明：属性测试的 Hypothesis 全局配置。
# 职责：
# - 关闭 deadline，避免首次导入 numpy 等慢路径导致的偶发超时
# - 根目录 conftest 的自动夹具只恢复运行时配置，允许其在多个样例间复用

from hypothesis import HealthCheck, settings

settings.register_profile(
    "pdskit",
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
)
settings.load_profile("pdskit")
