from utils.selector_helper import LocatorStrategy

# 商品标题
product_title = LocatorStrategy(
    concept="product_title",
    candidates=(".pdp-product-title", "h1.title", '[class*="pdp-mod-product-badge-title"]'),
    description="商品标题",
)

# 商品价格
product_price = LocatorStrategy(
    concept="product_price",
    candidates=(".pdp-price", ".product-price", '[class*="pdp-mod-price"]'),
    description="商品价格",
)

# 配送/运费信息区块（列表）
shipping_info = LocatorStrategy(
    concept="shipping_info",
    candidates=(
        ".delivery-option-item",
        '[class*="free-delivery"]',
        '[class*="shipping"]',
        ".service-item",
        ".pdp-delivery-item",
        '[data-qa-locator*="delivery"]',
    ),
    pick="all",
    description="配送信息",
)

# 卖家名称
seller_name = LocatorStrategy(
    concept="seller_name",
    candidates=(".seller-name", ".pdp-product-seller", '[class*="seller"]'),
    description="卖家名称",
)

# 加入购物车按钮
add_to_cart = LocatorStrategy(
    concept="add_to_cart",
    candidates=('button[data-spm="add-to-cart"]', ".add-to-cart", '[class*="btn-add-to-cart"]'),
    description="加入购物车按钮",
)
