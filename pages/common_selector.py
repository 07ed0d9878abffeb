from utils.selector_helper import LocatorStrategy

# 弹窗关闭按钮（登录引导、促销弹窗、App 下载提示），按出现频率排序
popup_close = LocatorStrategy(
    concept="popup_close",
    candidates=(
        '[data-spm="close"]',
        '.close-btn',
        '.lazyload-wrapper .close',
        '.next-dialog-close',
        'button[aria-label="Close"]',
        '.mod-close',
        '.popup-close',
    ),
    description="弹窗关闭按钮",
)
