from utils.selector_helper import LocatorStrategy

# 搜索输入框
search_input = LocatorStrategy(
    concept="search_input",
    candidates=("#q", 'input[type="search"]', ".search-box input"),
    description="首页搜索输入框",
)

# 搜索按钮
search_button = LocatorStrategy(
    concept="search_button",
    candidates=('button[type="submit"]', ".search-btn", '[data-spm="search"]'),
    description="搜索按钮",
)
