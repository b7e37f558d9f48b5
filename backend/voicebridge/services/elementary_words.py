"""
Beginner-level English words that are never surfaced as vocabulary.

Applied to extracted nouns and verbs (not phrases) after lowercasing and
trimming. Inflected forms are listed explicitly; there is no stemming.
"""

_AUXILIARIES = """
be been being am is are was were have has had having do does did doing done
will would shall should may might must can could
"""

_BASIC_VERBS = """
go goes went gone going come comes came coming get gets got getting
make makes made making take takes took taken taking give gives gave given giving
say says said saying see sees saw seen seeing know knows knew known knowing
think thinks thought thinking want wants wanted wanting like likes liked liking
need needs needed needing look looks looked looking use uses used using
find finds found finding tell tells told telling ask asks asked asking
work works worked working try tries tried trying call calls called calling
help helps helped helping show shows showed shown showing play plays played playing
move moves moved moving live lives lived living believe believes believed believing
bring brings brought bringing happen happens happened happening
write writes wrote written writing sit sits sat sitting stand stands stood standing
lose loses lost losing pay pays paid paying meet meets met meeting
include includes included including continue continues continued continuing
set sets setting learn learns learned learnt learning change changes changed changing
lead leads led leading understand understands understood understanding
watch watches watched watching follow follows followed following
stop stops stopped stopping create creates created creating
speak speaks spoke spoken speaking read reads reading allow allows allowed allowing
add adds added adding spend spends spent spending grow grows grew grown growing
open opens opened opening walk walks walked walking eat eats ate eaten eating
"""

_BASIC_NOUNS = """
time year years day days way ways thing things man men woman women people person persons
child children kid kids baby babies place places life world worlds
house houses home homes room rooms water food money morning mornings afternoon afternoons
evening evenings night nights week weeks month months today tomorrow yesterday
name names friend friends family families school schools teacher teachers student students
book books pen pens paper papers car cars bus buses train trains phone phones computer computers
table tables chair chairs door doors window windows bed beds bathroom bathrooms kitchen kitchens
milk bread rice egg eggs apple apples dog dogs cat cats bird birds
sun moon sky tree trees flower flowers hand hands head heads eye eyes ear ears
nose mouth mouths foot feet leg legs arm arms body bodies
"""

_BASIC_ADJECTIVES = """
good bad big small new old long short hot cold warm cool happy sad nice fine
right wrong easy hard difficult simple fast slow high low large little young
beautiful ugly clean dirty full empty heavy light dark bright closed
free busy ready sure sorry glad
"""

_FUNCTION_WORDS = """
i you he she it we they me him her us them my your his its our their
this that these those what who where when why how
all some many much more most few one two three four five six seven eight nine ten
first second third last next other another same different each every both either neither
"""

ELEMENTARY_WORDS = frozenset(
    " ".join((_AUXILIARIES, _BASIC_VERBS, _BASIC_NOUNS, _BASIC_ADJECTIVES, _FUNCTION_WORDS)).split()
)


def is_elementary(word: str) -> bool:
    return word.strip().lower() in ELEMENTARY_WORDS
