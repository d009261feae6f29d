"""Genre, language and director-persona tables."""
from __future__ import annotations

from dataclasses import dataclass

DEFAULT_CATEGORY = "影视 (Film/TV)"

GENRE_CATEGORIES: dict[str, list[str]] = {
    "自定义 (Custom)": ["无 (None)"],
    "广告 (Ads)": [
        "美妆: 极简护肤 (Skincare Minimal)", "美妆: 奢华彩妆 (Luxury Makeup)", "汽车: 极致速度 (Supercar)",
        "汽车: 家庭休旅 (Family SUV)", "汽车: 越野硬核 (Offroad)", "饮料: 气泡爽感 (Soda)",
        "饮料: 茶道静谧 (Tea Ceremony)", "酒水: 派对狂欢 (Club)", "酒水: 商务尊享 (Whiskey)",
        "数码: 黑科技发布 (Tech Launch)", "数码: 赛博开箱 (Cyber Unbox)", "时尚: 街头潮流 (Streetwear)",
        "时尚: 高定秀场 (Haute Couture)", "家居: 北欧极简 (Nordic Home)", "家居: 智能生活 (Smart Home)",
        "旅游: 史诗自然 (Epic Nature)", "旅游: 城市漫步 (City Walk)", "公益: 环保呼吁 (Eco)",
        "公益: 情感叙事 (Emotional)", "游戏: 3A大作CG (AAA Game)", "游戏: 二次元手游 (Anime Game)",
        "游戏: 像素复古 (Pixel Game)", "电商: 618大促 (Sales)", "电商: 直播切片 (Live Stream)",
        "母婴: 温馨治愈 (Baby)", "宠物: 萌宠日常 (Cute Pets)", "金融: 科技未来 (Fintech)",
        "金融: 信任传承 (Legacy)", "教育: 知识图谱 (EduGraph)", "房地产: 奢华样板间 (Luxury Real Estate)",
        "APP: 界面演示 (UI Demo)", "企业: 辉煌历程 (Corporate History)", "节日: 赛博春节 (Cyber CNY)",
        "珠宝: 微距光影 (Jewelry Macro)", "香水: 氛围意境 (Perfume Mood)", "手表: 机械美学 (Watch Mech)",
        "快餐: 诱人特写 (Food Porn)", "健身: 燃脂高能 (Workout)", "物流: 全球连接 (Logistics)",
        "航空: 云端体验 (Aviation)",
    ],
    "短剧 (Short Drama)": [
        "霸道总裁: 办公室恋情", "霸道总裁: 契约婚姻", "重生: 回到1990", "重生: 豪门复仇", "古装: 宫斗权谋",
        "古装: 仙侠虐恋", "古装: 种田经营", "战神: 龙王归来", "战神: 边境守护", "神医: 下山退婚",
        "神医: 妙手回春", "都市: 职场逆袭", "都市: 婆媳大战", "悬疑: 凶案现场", "悬疑: 规则怪谈",
        "穿越: 现代武器打脸", "穿越: 历史名将", "萌宝: 天才黑客", "萌宝: 助攻追妻", "真假千金: 打脸时刻",
        "系统: 攻略反派", "系统: 无限花钱", "末世: 囤积物资", "末世: 异能觉醒", "灵异: 民俗惊悚",
        "灵异: 抓鬼日常", "青春: 校园暗恋", "青春: 体育竞技", "民国: 军阀虐恋", "民国: 谍战风云",
        "替身: 追妻火葬场", "赘婿: 扮猪吃虎", "大女主: 手撕渣男", "大女主: 商业帝国", "娱乐圈: 顶流隐婚",
        "娱乐圈: 选秀逆袭", "电竞: 冠军荣耀", "美食: 深夜食堂", "赛博: 仿生人恋情", "搞笑: 沙雕反转",
    ],
    "MV (Music Video)": [
        "K-Pop: 高光舞蹈 (Dance Perf)", "K-Pop: 概念电影 (Concept Film)", "C-Pop: 古风国潮 (Guochao)",
        "J-Pop: 青春日系 (School)", "Rock: 废墟乐队 (Ruins Band)", "Rock: 迷幻摇滚 (Psychedelic)",
        "Hip-Hop: 街头涂鸦 (Street)", "Hip-Hop: 豪车金钱 (Flex)", "Ballad: 伤感叙事 (Sad Story)",
        "Ballad: 黑白肖像 (B&W Portrait)", "Electronic: 赛博夜店 (Cyber Club)",
        "Electronic: 视觉循环 (Visual Loop)", "R&B: 霓虹都市 (Neon City)", "R&B: 复古胶片 (Vintage Film)",
        "Jazz: 烟雾酒吧 (Smoky Bar)", "Folk: 森林原野 (Forest Folk)", "Metal: 暗黑哥特 (Dark Gothic)",
        "Metal: 火焰仪式 (Fire Ritual)", "Indie: 意识流 (Stream of Consciousness)", "Indie: 低保真 (Lo-Fi)",
        "Anime: 2D混合 (2D Mix)", "Anime: 动态歌词 (Typography)", "Vaporwave: 蒸汽波 (Aesthetic)",
        "Glitch: 故障艺术 (Datamosh)", "Y2K: 千禧辣妹 (Y2K)", "Retro: 80s 迪斯科 (Disco)",
        "Retro: 90s VHS (VHS)", "Travel: 唯美旅拍 (Vlog)", "Travel: 无人机航拍 (Drone)",
        "Concept: 超现实主义 (Surreal)", "Concept: 极简主义 (Minimal)", "Concept: 抽象几何 (Abstract)",
        "Live: 演唱会现场 (Concert)", "Studio: 录音棚 (Recording)", "One Take: 一镜到底 (Long Shot)",
        "Story: 微电影 (Short Film)", "Dance: 练习室 (Practice)", "Art: 装置艺术 (Installation)",
        "Art: 投影映射 (Mapping)", "Dream: 梦境逻辑 (Dreamcore)",
    ],
    "动漫 (Anime)": [
        "少年热血: 战斗大赛", "少年热血: 友情羁绊", "魔法少女: 华丽变身", "魔法少女: 暗黑致郁",
        "机甲: 太空歌剧", "机甲: 真实系战争", "异世界: 勇者冒险", "异世界: 转生恶役", "异世界: 慢生活",
        "校园: 青涩初恋", "校园: 社团活动", "校园: 不良少年", "运动: 篮球竞技", "运动: 足球联赛",
        "运动: 极限运动", "悬疑: 密室推理", "悬疑: 智斗博弈", "恐怖: 都市怪谈", "恐怖: 克苏鲁",
        "治愈: 萌系日常", "治愈: 乡村生活", "搞笑: 颜艺吐槽", "搞笑: 无厘头", "赛博朋克: 义体改造",
        "赛博朋克: 黑客入侵", "蒸汽朋克: 飞空艇", "后宫: 修罗场", "百合: 细腻情感", "耽美: 唯美古风",
        "美食: 爆衣料理", "偶像: 舞台Live", "历史: 战国风云", "奇幻: 龙与地下城", "超能力: 学院都市",
        "兽耳: 异种族", "吸血鬼: 贵族美学", "丧尸: 求生之路", "吉卜力: 手绘水彩", "新海诚: 光影云海",
        "今敏: 梦境剪辑", "扳机社: 夸张透视", "国漫: 水墨修仙", "国漫: 3D玄幻",
    ],
    "影视 (Film/TV)": [
        "动作: 枪战火拼", "动作: 功夫格斗", "动作: 飙车追逐", "科幻: 硬核太空", "科幻: 人工智能",
        "科幻: 时间旅行", "科幻: 废土末日", "战争: 史诗战场", "战争: 特种作战", "超级英雄: 起源故事",
        "超级英雄: 团队集结", "犯罪: 警匪卧底", "犯罪: 完美抢劫", "犯罪: 连环杀手", "悬疑: 烧脑反转",
        "悬疑: 心理惊悚", "恐怖: 驱魔仪式", "恐怖: 伪纪录片", "恐怖: 砍杀电影", "西部: 荒野大镖客",
        "武侠: 江湖恩怨", "仙侠: 三生三世", "宫廷: 权谋争斗", "历史: 宏大传记", "爱情: 绝症虐恋",
        "爱情: 浪漫喜剧", "家庭: 伦理纠葛", "青春: 成长阵痛", "喜剧: 黑色幽默", "歌舞: 华丽排场",
        "纪录片: 自然生态", "纪录片: 人文社会", "公路片: 心灵之旅", "黑色电影: 阴影侦探", "律政: 法庭辩论",
        "医疗: 急诊室", "体育: 逆袭夺冠", "冒险: 丛林寻宝", "怪兽: 巨兽对决", "谍战: 摩斯密码",
    ],
}

GENRES = [g for genres in GENRE_CATEGORIES.values() for g in genres]

LANGUAGES = {
    "zh-CN": "简体中文 (CN)",
    "en-US": "English (US)",
    "ja-JP": "日本語 (JP)",
    "ko-KR": "한국어 (KR)",
}

LYRIC_LANGUAGES = {
    "zh": "中文 (Chinese)",
    "en": "English",
    "ja": "日本語 (Japanese)",
    "ko": "한국어 (Korean)",
    "es": "Español",
    "fr": "Français",
    "de": "Deutsch",
}


def genre_category(genre: str) -> str:
    for category, genres in GENRE_CATEGORIES.items():
        if genre in genres:
            return category
    return DEFAULT_CATEGORY


def target_language_name(code: str) -> str:
    """Human-readable output language embedded in every prompt."""
    if "zh" in code or "CN" in code:
        return "Simplified Chinese (简体中文)"
    return LANGUAGES.get(code, code)


def lyric_language_name(code: str) -> str:
    return LYRIC_LANGUAGES.get(code, code)


def visual_base_instruction(genre: str) -> str:
    """Fallback look for a genre when no style has been detected."""
    if any(k in genre for k in ("Anime", "动漫", "Pixel", "二次元")):
        return "2D Anime, Cel Shaded, Flat illustration, high quality line art."
    if "Illustration" in genre or "绘本" in genre:
        return "Hand drawn illustration, artistic texture."
    if any(k in genre for k in ("3D", "Game", "AAA")):
        return "Unreal Engine 5 Render, 3D CGI, Octane Render, 8k, detailed textures."
    return "Photorealistic, 8k, Live Action, Cinematography, high fidelity, 35mm film grain."


@dataclass(frozen=True)
class AgentPersona:
    role: str
    task_desc: str
    focus: str
    structure_guide: str
    output_advice: str


MV_DIRECTOR = AgentPersona(
    role="Master Music Video Director & Choreographer (like Michel Gondry, Dave Meyers, or Spike Jonze).",
    task_desc="Create a visually driven Music Video treatment.",
    focus="Visual rhythm, beat synchronization, choreography, lighting, and mood. MINIMAL DIALOGUE.",
    structure_guide=(
        "Structure: Intro (Mood Setter) -> Verse 1 (Narrative/Performance) -> Chorus (High Energy/Dance) "
        "-> Bridge (Visual Shift) -> Outro (Fade)."
    ),
    output_advice=(
        "Focus on visual flow and editing beats. Dialogue should be lyrics or silence. "
        "Describe camera movement matching the music tempo."
    ),
)
AD_DIRECTOR = AgentPersona(
    role="Cannes Lions Award-winning Creative Director (Ogilvy/Leo Burnett style).",
    task_desc="Create a high-impact Commercial / Ad Spot.",
    focus="Brand impact, product showcase, consumer insight, and visual persuasion.",
    structure_guide=(
        "Structure: The Hook (0-3s, Attention Grabber) -> The Pain/Need -> The Solution (Product) "
        "-> The Benefit (Euphoria) -> Call to Action."
    ),
    output_advice=(
        "Dialogue must be punchy slogans or sharp copy. Visuals should be high-end commercial quality. "
        "Pacing is extremely fast."
    ),
)
SHORT_DRAMA_WRITER = AgentPersona(
    role="Viral Short Video Scriptwriter (TikTok/Reels/Douyin Expert).",
    task_desc="Create a viral Vertical Drama script.",
    focus="High retention, immediate hooks, emotional reversals, and 'face-slapping' moments.",
    structure_guide=(
        "Structure: 3-second Hook -> Intense Conflict Setup -> Escalation -> Immediate Reversal/Climax -> Cliffhanger."
    ),
    output_advice=(
        "Pacing must be breathless. Dialogue is sharp, conflict-driven, and emotional. "
        "Every scene must end with a hook."
    ),
)
ANIME_DIRECTOR = AgentPersona(
    role="Veteran Anime Series Director & Composition Writer.",
    task_desc="Create an Anime Episode storyboard.",
    focus="Character expression (sakuga moments), world-building, and emotional resonance.",
    structure_guide=(
        "Structure: Introduction (Setup) -> Inciting Incident -> Rising Action (Battle/Drama) "
        "-> Climax (Sakuga) -> Resolution."
    ),
    output_advice=(
        "Include internal monologues. Visuals should describe exaggerated expressions, speed lines, and anime tropes."
    ),
)
FILM_SCREENWRITER = AgentPersona(
    role="Master Screenwriter and Film Theorist (like Robert McKee or Syd Field).",
    task_desc="Create a Cinematic Film Narrative.",
    focus="Cinematic storytelling, character arc, visual subtext, and thematic depth.",
    structure_guide=(
        "Structure: Act 1 (The Status Quo & Inciting Incident) -> Act 2 (Progressive Complications) "
        "-> Act 3 (The Crisis & Climax) -> Resolution."
    ),
    output_advice="Focus on subtext and cinematic visual language. Show, don't tell.",
)


def agent_persona_for(genre: str) -> AgentPersona:
    category = genre_category(genre)
    if "MV" in category or "MV" in genre:
        return MV_DIRECTOR
    if "Ads" in category or "广告" in genre:
        return AD_DIRECTOR
    if "Short Drama" in category or "短剧" in genre:
        return SHORT_DRAMA_WRITER
    if "Anime" in category or "动漫" in genre:
        return ANIME_DIRECTOR
    return FILM_SCREENWRITER
