from utils.selector_helper import LocatorStrategy

# 商品卡片（列表）
product_cards = LocatorStrategy(
    concept="product_cards",
    candidates=(
        ".product-card",
        '[data-qa-locator="product-item"]',
        ".item--ZJRDn",
        'li[class*="product"]',
    ),
    pick="all",
    description="搜索结果商品卡片",
)

# 商品价格（列表）
product_prices = LocatorStrategy(
    concept="product_prices",
    candidates=(".price--NVB62", '[data-qa-locator="product-price"]', ".product-price"),
    pick="all",
    description="商品卡片价格",
)

# 价格区间 - 最低价输入框（区间容器内的第一个输入框）
price_min_input = LocatorStrategy(
    concept="price_min_input",
    candidates=('input[placeholder*="Min"]', 'input[name="min_price"]', ".price-range-filter input"),
    description="最低价输入框",
)

# 价格区间 - 最高价输入框（区间容器内的最后一个输入框）
price_max_input = LocatorStrategy(
    concept="price_max_input",
    candidates=('input[placeholder*="Max"]', 'input[name="max_price"]', ".price-range-filter input"),
    pick="last",
    description="最高价输入框",
)

# 价格区间 - 应用按钮
price_apply_button = LocatorStrategy(
    concept="price_apply_button",
    candidates=(
        'button[data-qa-locator="filter-price-button"]',
        "button.price-filter-btn",
        ".price-range-filter button",
    ),
    description="价格筛选应用按钮",
)

# 品牌选项（模板，使用 brand_option.formatted(brand="Samsung")）
brand_option = LocatorStrategy(
    concept="brand_option",
    candidates=(
        'label:has-text("{brand}")',
        '.checkbox-item:has-text("{brand}")',
        '[data-qa-locator*="brand"] >> text="{brand}"',
    ),
    description="品牌筛选项",
)
