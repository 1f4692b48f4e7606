"""
确定性随机数生成器

引擎中所有概率判定（敌人开火、Boss 开火、道具掉落、道具类型）
都从同一个 DeterministicRNG 实例取数，按固定顺序消耗。
相同种子 + 相同输入序列 => 完全相同的对局，可用于回放校验和测试。
"""

from typing import Sequence, TypeVar

T = TypeVar('T')


class DeterministicRNG:
    """
    确定性随机数生成器

    使用 Xorshift32 算法，纯整数位运算，跨平台结果一致。

    引擎中的使用场景：
    - 敌人开火判定：if rng.chance(0.01): fire()
    - 道具掉落判定：if rng.chance(0.05): drop()
    - 道具类型选择：kind = rng.pick(list(PowerUpType))

    属性:
        seed (int):
            初始种子（归一化后），用于回放文件头。

        state (int):
            RNG 的内部状态（32位整数）。
            每次取数后都会改变。
            可以通过 get_state() / set_state() 保存和恢复。

    示例:
        rng = DeterministicRNG(seed=12345)
        if rng.chance(0.05):
            kind = rng.pick(kinds)
    """

    def __init__(self, seed: int = 1):
        """
        初始化 RNG

        Args:
            seed: 随机种子

        Note:
            种子 0 会被自动改为 1（算法要求状态非零）
        """
        self.state = seed & 0xFFFFFFFF
        if self.state == 0:
            self.state = 1
        self.seed = self.state

    def next_uint32(self) -> int:
        """
        生成下一个 32 位无符号整数

        Returns:
            随机整数 [0, 4294967295]
        """
        x = self.state
        x ^= (x << 13) & 0xFFFFFFFF
        x ^= (x >> 17)
        x ^= (x << 5) & 0xFFFFFFFF
        self.state = x
        return x

    def range(self, min_val: int, max_val: int) -> int:
        """
        生成指定范围的随机整数

        Args:
            min_val: 最小值（包含）
            max_val: 最大值（包含）

        Returns:
            [min_val, max_val] 范围内的整数
        """
        if min_val == max_val:
            return min_val

        span = max_val - min_val + 1
        return min_val + (self.next_uint32() % span)

    def uniform(self) -> float:
        """
        生成 [0, 1) 范围的浮点数

        Returns:
            随机浮点数 [0.0, 1.0)
        """
        return self.next_uint32() / 0x100000000

    def chance(self, probability: float) -> bool:
        """
        以给定概率返回 True

        每次调用恰好消耗一个随机数，与结果无关，
        保证判定顺序固定时取数序列也固定。

        Args:
            probability: 概率 [0.0, 1.0]

        Returns:
            True 以给定概率，否则 False
        """
        return self.uniform() < probability

    def pick(self, items: Sequence[T]) -> T:
        """
        从序列中随机选择一个元素

        Args:
            items: 序列（非空）

        Returns:
            随机选择的元素，空序列返回 None
        """
        if not items:
            return None
        index = self.range(0, len(items) - 1)
        return items[index]

    def get_state(self) -> int:
        """获取当前状态（用于快照和回放）"""
        return self.state

    def set_state(self, state: int):
        """
        设置状态

        Args:
            state: 之前保存的状态值
        """
        self.state = state & 0xFFFFFFFF
        if self.state == 0:
            self.state = 1
