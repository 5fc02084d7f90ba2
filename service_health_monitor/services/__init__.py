"""服务层：配置、调度、汇总、状态与报告"""
